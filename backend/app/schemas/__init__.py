from .publishing import PromotionSelection, Quote
from .annonce import AnnonceCreate, AnnoncePublishResponse, AnnonceListResponse, PromotionMeta
from .profile import ProfileDetailResponse

__all__ = [
    "PromotionSelection", "Quote",
    "AnnonceCreate", "AnnoncePublishResponse", "AnnonceListResponse", "PromotionMeta",
    "ProfileDetailResponse",
]
