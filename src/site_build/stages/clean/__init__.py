from .stage import stage_clean

__all__ = ["stage_clean"]
