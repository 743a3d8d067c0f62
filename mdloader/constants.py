from enum import Enum

ERROR_SOURCE = "MangaDex"


class EntityType(Enum):
    """Represents every resource type the API can return or reference."""
    MANGA = "manga"
    CHAPTER = "chapter"
    COVER_ART = "cover_art"
    AUTHOR = "author"
    ARTIST = "artist"
    SCANLATION_GROUP = "scanlation_group"
    TAG = "tag"
    USER = "user"
    CUSTOM_LIST = "custom_list"


class ContentRating(Enum):
    """Represents manga content ratings."""
    SAFE = "safe"
    SUGGESTIVE = "suggestive"
    EROTICA = "erotica"
    PORNOGRAPHIC = "pornographic"
    NONE = "none"


class Status(Enum):
    """Represents publication status values."""
    ONGOING = "ongoing"
    COMPLETED = "completed"
    HIATUS = "hiatus"
    CANCELLED = "cancelled"


class PublicationDemographic(Enum):
    """Represents target demographics."""
    SHOUNEN = "shounen"
    SHOUJO = "shoujo"
    JOSEI = "josei"
    SEINEN = "seinen"
    NONE = "none"


class TagsMode(Enum):
    """Represents how included tags are combined."""
    AND = "AND"
    OR = "OR"


class Order(Enum):
    """Represents sort directions."""
    ASC = "asc"
    DESC = "desc"
