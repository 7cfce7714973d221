from commanderforge.models.card import (
    BASIC_LAND_NAMES,
    Card,
    Category,
    Color,
    Commander,
    ScoredCard,
    categorize,
    make_basic_land,
)
from commanderforge.models.collaborators import (
    CardRepository,
    PriceQuote,
    SynergyResult,
    SynergyScorer,
)
from commanderforge.models.deck import (
    DeckSlate,
    GeneratedDeck,
    GenerationResult,
    GenerationStatus,
)
from commanderforge.models.failure import (
    STANDARD_MESSAGES,
    STANDARD_SUGGESTIONS,
    ApiResponse,
    CommanderNotFoundError,
    FailureDetail,
    FailureKind,
    InsufficientPoolError,
    InvalidWeightsError,
    KnownError,
    OutcomeType,
    PriceLookupError,
    create_known_failure,
    create_success,
    create_unknown_failure,
    finalize_response,
)
from commanderforge.models.policy import (
    ARCHETYPE_CURVES,
    POWER_POLICIES,
    PowerPolicy,
    detect_archetype,
    get_power_policy,
)
from commanderforge.models.weights import WEIGHTED_CATEGORIES, CategoryWeights, Quota

__all__ = [
    "ARCHETYPE_CURVES",
    "ApiResponse",
    "BASIC_LAND_NAMES",
    "Card",
    "CardRepository",
    "Category",
    "CategoryWeights",
    "Color",
    "Commander",
    "CommanderNotFoundError",
    "DeckSlate",
    "FailureDetail",
    "FailureKind",
    "GeneratedDeck",
    "GenerationResult",
    "GenerationStatus",
    "InsufficientPoolError",
    "InvalidWeightsError",
    "KnownError",
    "OutcomeType",
    "POWER_POLICIES",
    "PowerPolicy",
    "PriceLookupError",
    "PriceQuote",
    "Quota",
    "STANDARD_MESSAGES",
    "STANDARD_SUGGESTIONS",
    "ScoredCard",
    "SynergyResult",
    "SynergyScorer",
    "WEIGHTED_CATEGORIES",
    "categorize",
    "create_known_failure",
    "create_success",
    "create_unknown_failure",
    "detect_archetype",
    "finalize_response",
    "get_power_policy",
    "make_basic_land",
]
