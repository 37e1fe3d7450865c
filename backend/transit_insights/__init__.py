"""Transit Insights: analytics and fleet maintenance prioritization service."""

__version__ = "0.1.0"
