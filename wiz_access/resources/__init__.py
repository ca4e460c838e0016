"""Resource builders, one per Wiz collection."""

from wiz_access.resources.insights import InsightBuilder
from wiz_access.resources.projects import ProjectBuilder
from wiz_access.resources.roles import RoleBuilder
from wiz_access.resources.users import UserBuilder

__all__ = ["InsightBuilder", "ProjectBuilder", "RoleBuilder", "UserBuilder"]
