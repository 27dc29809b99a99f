"""blogcore: multi-locale blog content core"""

from blogcore.engagement import EngagementAggregator
from blogcore.errors import ConflictError, ContentError, InternalError, NotFoundError, ValidationError
from blogcore.post_service import ContentService
from blogcore.repository import Repository, RepositoryConfig
from blogcore.tag_service import TagService
from blogcore.translation_linker import TranslationLinker, resolve_identity
from blogcore.translation_service import TranslationService

__all__ = [
    "ContentService",
    "EngagementAggregator",
    "TagService",
    "TranslationLinker",
    "TranslationService",
    "resolve_identity",
    "Repository",
    "RepositoryConfig",
    "ContentError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
]
