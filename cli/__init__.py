"""
Command-line entry points.

Provides command-line interfaces for:
- Walk-forward evaluation and parameter stability scoring
- Equal-allocation portfolio and correlation analysis
"""
