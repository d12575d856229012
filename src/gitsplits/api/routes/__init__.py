from gitsplits.api.routes import agent, health

__all__ = ["agent", "health"]
