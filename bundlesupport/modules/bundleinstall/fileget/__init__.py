from .repository_system import MavenRepositorySystem
from .update_policy import is_update_required

__all__ = ["MavenRepositorySystem", "is_update_required"]
