from .stage_router import Stage, StageRouter

__all__ = ["Stage", "StageRouter"]
