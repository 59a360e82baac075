"""
Dependency injection setup for the application.

Every collaborator is constructed here and handed to the services; tests
replace the service providers through ``app.dependency_overrides``.
"""

from functools import lru_cache
from app.db.database import get_database
from app.repositories.analytics import MongoAnalyticsRepository
from app.repositories.redis_cache import RedisCacheRepository
from app.repositories.session import MongoSessionRepository
from app.services.ai_service import LLMClient
from app.services.analytics_service import AnalyticsService
from app.services.diagram_service import DiagramService
from app.services.diagram_validator import MermaidValidator
from app.services.export_service import export_service
from app.services.prd_service import PRDService
from app.services.session_service import SessionService


@lru_cache()
def get_llm_client() -> LLMClient:
    """Get the LLM client; the provider key is only checked on first call."""
    return LLMClient()


@lru_cache()
def get_diagram_validator() -> MermaidValidator:
    """Get the Mermaid validator instance."""
    return MermaidValidator()


@lru_cache()
def get_cache_repository() -> RedisCacheRepository:
    """Get cache repository instance."""
    return RedisCacheRepository()


def get_session_repository() -> MongoSessionRepository:
    """Get session repository instance."""
    return MongoSessionRepository(get_database())


def get_analytics_repository() -> MongoAnalyticsRepository:
    """Get analytics repository instance."""
    return MongoAnalyticsRepository(get_database())


def get_session_service() -> SessionService:
    """Get session service instance."""
    return SessionService(get_session_repository(), get_cache_repository())


def get_analytics_service() -> AnalyticsService:
    """Get analytics service instance."""
    return AnalyticsService(get_analytics_repository())


def get_prd_service() -> PRDService:
    """Get PRD service instance."""
    return PRDService(
        get_llm_client(),
        get_session_service(),
        get_analytics_service(),
        export_service,
    )


def get_diagram_service() -> DiagramService:
    """Get diagram service instance."""
    return DiagramService(get_llm_client(), get_diagram_validator(), get_session_service())


# Cleanup function for application shutdown
async def cleanup_dependencies():
    """Clean up dependencies on application shutdown."""
    if get_cache_repository.cache_info().currsize:
        await get_cache_repository().close()
