from .projection import ProjectionConfig, ProjectionService, build_projection_service

__all__ = ["ProjectionConfig", "ProjectionService", "build_projection_service"]
