from app.models.brand import Brand, BrandCompetitor, BrandPrompt
from app.models.citation_share import CitationShareStats
from app.models.daily_report import DailyReport
from app.models.prompt_result import PromptResult
from app.models.url_inventory import UrlCitation, UrlContentFacts, UrlInventory
from app.models.user import User

__all__ = [
    "Brand",
    "BrandCompetitor",
    "BrandPrompt",
    "CitationShareStats",
    "DailyReport",
    "PromptResult",
    "UrlCitation",
    "UrlContentFacts",
    "UrlInventory",
    "User",
]
