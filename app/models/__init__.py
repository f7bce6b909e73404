from app.models.user import User, UserRole
from app.models.publisher import Publisher
from app.models.article import Article, ArticleStatus

__all__ = ["User", "UserRole", "Publisher", "Article", "ArticleStatus"]
