"""Habit Strength MCP Server.

Track habits and see how strong they are — a decaying strength score,
current and best streaks, completion rates and score history for charts.
"""

__version__ = "0.1.0"
