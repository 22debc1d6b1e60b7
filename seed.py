"""
Seed the Lendify database with sample users, NFTs, a rental listing and a loan
request. Clears the four collections first.

    python seed.py
"""
import os
import logging
from datetime import datetime, timezone

from bson import ObjectId

import database
from database import create_document, ensure_indexes
from schemas import (
    User,
    Reputation,
    Preferences,
    NotificationPreferences,
    PrivacyPreferences,
    NFT,
    NFTMetadata,
    NFTAttribute,
    CollectionInfo,
    NFTPricing,
    PricePoint,
    NFTRentalStats,
    Ratings,
    NFTAnalytics,
    Rental,
    RentalPricing,
    RentalDuration,
    RentalSettings,
    RentalTerms,
    Penalties,
    ChainRef,
    Loan,
    Collateral,
    LoanTerms,
    LoanSettings,
)

logger = logging.getLogger(__name__)

COLLECTIONS = ["users", "nfts", "rentals", "loans"]


def sample_users():
    return [
        User(
            wallet_address="0x742d35cc6bf8fccb87a23180b10b7e9ba8b3a0c7",
            username="cryptoartist",
            email="artist@example.com",
            bio="Digital artist creating unique NFT collections",
            avatar="https://via.placeholder.com/150",
            is_verified=True,
            profile_completed=True,
            reputation=Reputation(
                total_listings=15, total_rentals=8, total_earnings=2.5, average_rating=4.8, successful_rentals=8
            ),
            preferences=Preferences(
                notifications=NotificationPreferences(email=True, push=True, sms=False),
                privacy=PrivacyPreferences(show_profile=True, show_activity=True, show_nfts=True),
                default_chain=1,
            ),
        ),
        User(
            wallet_address="0x8ba1f109551bd432803012645ac136c2c9e9c7a1",
            username="nftcollector",
            email="collector@example.com",
            bio="Passionate NFT collector and enthusiast",
            avatar="https://via.placeholder.com/150",
            profile_completed=True,
            reputation=Reputation(
                total_listings=5, total_rentals=12, total_earnings=0.8, average_rating=4.6, successful_rentals=11
            ),
        ),
        User(
            wallet_address="0x123456789abcdef123456789abcdef123456789a",
            username="gamemaster",
            email="gamer@example.com",
            bio="Gaming NFT specialist",
            avatar="https://via.placeholder.com/150",
            is_verified=True,
            profile_completed=True,
            reputation=Reputation(
                total_listings=25, total_rentals=20, total_earnings=5.2, average_rating=4.9, successful_rentals=19
            ),
        ),
    ]


def sample_nfts(now: datetime):
    return [
        NFT(
            contract_address="0xa0b86a33e6ba3050e71c8f1d5b23c8b74b0c6d92",
            token_id="1001",
            chain_id=1,
            owner="0x742d35cc6bf8fccb87a23180b10b7e9ba8b3a0c7",
            metadata=NFTMetadata(
                name="Cosmic Dragon #1001",
                description="A mystical dragon from the cosmic realm",
                image="https://via.placeholder.com/500",
                category="gaming",
                attributes=[
                    NFTAttribute(trait_type="Rarity", value="Legendary"),
                    NFTAttribute(trait_type="Power", value=95),
                    NFTAttribute(trait_type="Element", value="Fire"),
                ],
            ),
            collection=CollectionInfo(name="Cosmic Dragons", symbol="CDRG", floor_price=0.5, total_supply=10000, verified=True),
            pricing=NFTPricing(
                estimated_value=1.2,
                current_floor_price=0.5,
                last_sale_price=1.1,
                price_history=[PricePoint(price=1.2, timestamp=now)],
            ),
            rental=NFTRentalStats(
                is_available=True,
                total_rentals=3,
                successful_rentals=3,
                total_revenue=0.45,
                avg_daily_price=0.05,
                avg_rental_duration=3,
                ratings=Ratings(average=4.8, count=3, breakdown={"5": 2, "4": 1, "3": 0, "2": 0, "1": 0}),
            ),
            analytics=NFTAnalytics(
                views=150, favorites=25, shares=8, demand_score=78, rarity_score=92, utility_score=85, trending_score=88
            ),
        ),
        NFT(
            contract_address="0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d",
            token_id="2002",
            chain_id=1,
            owner="0x8ba1f109551bd432803012645ac136c2c9e9c7a1",
            metadata=NFTMetadata(
                name="Bored Ape #2002",
                description="A unique member of the Bored Ape Yacht Club",
                image="https://via.placeholder.com/500",
                category="pfp",
                attributes=[
                    NFTAttribute(trait_type="Background", value="Blue"),
                    NFTAttribute(trait_type="Eyes", value="Laser Eyes"),
                    NFTAttribute(trait_type="Mouth", value="Grin"),
                ],
            ),
            collection=CollectionInfo(name="Bored Ape Yacht Club", symbol="BAYC", floor_price=15.0, total_supply=10000, verified=True),
            pricing=NFTPricing(estimated_value=25.5, current_floor_price=15.0, last_sale_price=24.0),
            rental=NFTRentalStats(
                is_available=True,
                total_rentals=1,
                successful_rentals=1,
                total_revenue=0.5,
                avg_daily_price=0.25,
                avg_rental_duration=2,
                ratings=Ratings(average=5.0, count=1, breakdown={"5": 1, "4": 0, "3": 0, "2": 0, "1": 0}),
            ),
            analytics=NFTAnalytics(
                views=320, favorites=45, shares=12, demand_score=95, rarity_score=88, utility_score=70, trending_score=92
            ),
        ),
    ]


def sample_rental(nft_id: ObjectId):
    return Rental(
        nft=nft_id,
        lender="0x742d35cc6bf8fccb87a23180b10b7e9ba8b3a0c7",
        pricing=RentalPricing(daily_price=0.05, currency="ETH", collateral_required=0.2),
        duration=RentalDuration(min=1, max=7),
        settings=RentalSettings(instant_rent=True, allowed_use_cases=["gaming", "metaverse"]),
        terms=RentalTerms(
            description="Perfect for gaming and metaverse adventures.",
            restrictions=["No commercial use"],
            penalties=Penalties(late_return=0.01, damage=0.1),
        ),
        blockchain=ChainRef(
            chain_id=1,
            contract_address="0xa0b86a33e6ba3050e71c8f1d5b23c8b74b0c6d92",
            token_id="1001",
        ),
    )


def sample_loan(now: datetime):
    return Loan(
        borrower="0x123456789abcdef123456789abcdef123456789a",
        collateral=[
            Collateral(
                contract_address="0x60e4d786628fea6478f785a6d7e704777c86a7c6",
                token_id="5555",
                chain_id=1,
                estimated_value=8.5,
                locked_at=now,
            )
        ],
        terms=LoanTerms(
            principal=5.0,
            currency="ETH",
            interest_rate=15.0,
            duration=30,
            total_repayment=5.62,
            repayment_schedule="lump_sum",
            ltv_ratio=58.8,
        ),
        purpose="Short-term liquidity for new project launch",
        settings=LoanSettings(auto_liquidation=True, grace_period=7),
    )


def seed_database():
    """Clear and repopulate the collections. Returns inserted counts."""
    db = database.db
    if db is None:
        raise RuntimeError("DATABASE_URL is not set")

    logger.info("Clearing existing data...")
    for name in COLLECTIONS:
        db[name].delete_many({})
    ensure_indexes()

    now = datetime.now(timezone.utc)
    user_ids = [create_document("users", user) for user in sample_users()]
    logger.info("Created %d users", len(user_ids))

    nft_ids = [create_document("nfts", nft) for nft in sample_nfts(now)]
    logger.info("Created %d NFTs", len(nft_ids))

    rental_ids = [create_document("rentals", sample_rental(ObjectId(nft_ids[0])))]
    db["nfts"].update_one({"_id": ObjectId(nft_ids[0])}, {"$set": {"rental.currentListing": ObjectId(rental_ids[0])}})
    logger.info("Created %d rentals", len(rental_ids))

    loan_ids = [create_document("loans", sample_loan(now))]
    logger.info("Created %d loans", len(loan_ids))

    return {
        "users": len(user_ids),
        "nfts": len(nft_ids),
        "rentals": len(rental_ids),
        "loans": len(loan_ids),
    }


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        summary = seed_database()
    except Exception:
        logger.exception("Seeding failed")
        raise SystemExit(1)
    logger.info("Seeding completed: %s", ", ".join(f"{k}={v}" for k, v in summary.items()))
    if database.client is not None:
        database.client.close()
