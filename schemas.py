"""
Database Schemas for the Lendify marketplace

Each top-level Pydantic model describes one MongoDB collection. Documents are
stored with camelCase keys (walletAddress, rental.isAvailable, ...) so every
model shares a base that generates camelCase aliases; dump with
``model_dump(by_alias=True)`` before writing.

- User   -> "users"
- NFT    -> "nfts"
- Rental -> "rentals"
- Loan   -> "loans"
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )


# ------------------------
# User
# ------------------------
class Reputation(Document):
    total_listings: int = 0
    total_rentals: int = 0
    total_earnings: float = 0
    average_rating: float = 0
    successful_rentals: int = 0


class NotificationPreferences(Document):
    email: bool = True
    push: bool = True
    sms: bool = False


class PrivacyPreferences(Document):
    show_profile: bool = True
    show_activity: bool = True
    show_nfts: bool = Field(True, alias="showNFTs")


class Preferences(Document):
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    privacy: PrivacyPreferences = Field(default_factory=PrivacyPreferences)
    default_chain: Optional[int] = None
    language: str = "en"
    theme: str = "dark"


class TempAuth(Document):
    nonce: str
    expires_at: datetime
    attempts: int = 0


class User(Document):
    wallet_address: str = Field(..., description="Wallet address, stored lowercase")
    username: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    is_verified: bool = False
    profile_completed: bool = False
    login_count: int = 0
    role: Literal["user", "moderator", "admin"] = "user"
    temp_auth: Optional[TempAuth] = None
    reputation: Reputation = Field(default_factory=Reputation)
    preferences: Preferences = Field(default_factory=Preferences)


# ------------------------
# NFT
# ------------------------
class NFTAttribute(Document):
    trait_type: str
    value: Any = None


class NFTMetadata(Document):
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    attributes: List[NFTAttribute] = []


class CollectionInfo(Document):
    name: Optional[str] = None
    symbol: Optional[str] = None
    floor_price: Optional[float] = Field(None, ge=0)
    total_supply: Optional[int] = Field(None, ge=0)
    verified: bool = False


class PricePoint(Document):
    price: float
    currency: str = "ETH"
    timestamp: datetime
    source: str = "listing"


class NFTPricing(Document):
    estimated_value: Optional[float] = None
    current_floor_price: Optional[float] = None
    last_sale_price: Optional[float] = None
    price_history: List[PricePoint] = []


class Ratings(Document):
    average: float = 0
    count: int = 0
    breakdown: Dict[str, int] = Field(default_factory=lambda: {str(star): 0 for star in range(5, 0, -1)})


class NFTRentalStats(Document):
    is_available: bool = False
    total_rentals: int = 0
    successful_rentals: int = 0
    total_revenue: float = 0
    avg_daily_price: float = 0
    avg_rental_duration: float = 0
    ratings: Ratings = Field(default_factory=Ratings)
    current_listing: Optional[ObjectId] = Field(None, description="Reference to the active rentals._id")


class NFTAnalytics(Document):
    views: int = 0
    favorites: int = 0
    shares: int = 0
    demand_score: float = 0
    rarity_score: float = 0
    utility_score: float = 0
    trending_score: float = 0


class NFT(Document):
    contract_address: str
    token_id: str
    chain_id: int
    owner: str
    metadata: NFTMetadata = Field(default_factory=NFTMetadata)
    collection: CollectionInfo = Field(default_factory=CollectionInfo)
    pricing: NFTPricing = Field(default_factory=NFTPricing)
    rental: NFTRentalStats = Field(default_factory=NFTRentalStats)
    analytics: NFTAnalytics = Field(default_factory=NFTAnalytics)
    status: str = "active"


# ------------------------
# Rental
# ------------------------
UseCase = Literal["gaming", "metaverse", "pfp", "utility", "yield", "other"]


class RentalPricing(Document):
    daily_price: float = Field(..., gt=0)
    currency: str = "ETH"
    collateral_required: float = Field(0, ge=0)


class RentalDuration(Document):
    min: int = Field(1, ge=1, le=365)
    max: int = Field(30, ge=1, le=365)


class RentalSettings(Document):
    instant_rent: bool = False
    allowed_use_cases: List[UseCase] = []
    auto_extend: bool = False


class Penalties(Document):
    late_return: float = 0
    damage: float = 0


class RentalTerms(Document):
    description: Optional[str] = None
    restrictions: List[str] = []
    penalties: Penalties = Field(default_factory=Penalties)


class ChainRef(Document):
    chain_id: int
    contract_address: str
    token_id: str


class Rental(Document):
    nft: ObjectId = Field(..., description="Reference to nfts._id")
    lender: str
    pricing: RentalPricing
    duration: RentalDuration = Field(default_factory=RentalDuration)
    settings: RentalSettings = Field(default_factory=RentalSettings)
    terms: RentalTerms = Field(default_factory=RentalTerms)
    status: str = "active"
    blockchain: Optional[ChainRef] = None


# ------------------------
# Loan
# ------------------------
class Collateral(Document):
    nft: Optional[ObjectId] = Field(None, description="Reference to nfts._id")
    contract_address: str
    token_id: str
    chain_id: int
    estimated_value: float = Field(..., gt=0)
    locked_at: Optional[datetime] = None
    status: str = "locked"


class LoanTerms(Document):
    principal: float
    currency: str = "ETH"
    interest_rate: float
    duration: int
    total_repayment: Optional[float] = None
    repayment_schedule: Literal["lump_sum", "monthly", "weekly"] = "lump_sum"
    ltv_ratio: Optional[float] = None


class LoanSettings(Document):
    auto_liquidation: bool = True
    grace_period: int = 7


class Loan(Document):
    borrower: str
    collateral: List[Collateral] = []
    terms: LoanTerms
    purpose: Optional[str] = None
    settings: LoanSettings = Field(default_factory=LoanSettings)
    status: str = "requested"
