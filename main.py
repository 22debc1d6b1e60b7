import os
import re
import math
import string
import secrets
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Literal, Dict, Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from bson import ObjectId

from database import db, create_document, ensure_indexes, serialize_doc
from schemas import (
    Document,
    User,
    TempAuth,
    NFT,
    NFTMetadata,
    CollectionInfo,
    NFTPricing,
    PricePoint,
    Rental,
    RentalPricing,
    RentalDuration,
    RentalSettings,
    RentalTerms,
    ChainRef,
    UseCase,
    Loan,
    LoanTerms,
    LoanSettings,
    Collateral,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

NONCE_TTL = timedelta(minutes=15)
NONCE_LENGTH = 13
MAX_LTV = 80
TIMEFRAMES = {"7d": timedelta(days=7), "30d": timedelta(days=30), "90d": timedelta(days=90)}
NFT_SORT_FIELDS = {
    "recent": "createdAt",
    "price": "rental.avgDailyPrice",
    "rating": "rental.ratings.average",
    "trending": "analytics.trendingScore",
}

SERVICES = ["auth", "nft", "rental", "lending", "flashLoan", "oracle", "reputation", "analytics", "crossChain"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    if db is not None:
        try:
            ensure_indexes()
        except Exception:
            logger.exception("Failed ensuring indexes")
    yield


app = FastAPI(title="Lendify Marketplace API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ------------------------
# Error handling
# ------------------------
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Route not found", "path": request.url.path},
        )
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    first = details[0] if details else {"field": "", "message": "Invalid request"}
    error = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    return JSONResponse(status_code=400, content={"success": False, "error": error, "details": details})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return JSONResponse(status_code=409, content={"success": False, "error": "Duplicate field value entered"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Something went wrong!", "message": str(exc)},
    )


# ------------------------
# Helpers
# ------------------------
def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_collection(name: str):
    if db is None:
        raise HTTPException(status_code=500, detail="Database not available")
    return db[name]


def to_object_id(value: str) -> ObjectId:
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail="Invalid ID format")
    return ObjectId(value)


def paginate(collection, filter_: Dict[str, Any], sort: List, page: int, limit: int) -> Dict[str, Any]:
    total = collection.count_documents(filter_)
    cursor = collection.find(filter_).sort(sort).skip((page - 1) * limit).limit(limit)
    return {
        "items": list(cursor),
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        },
    }


def populate_nft(rental_doc: Dict[str, Any]) -> Dict[str, Any]:
    nft_id = rental_doc.get("nft")
    if isinstance(nft_id, ObjectId):
        rental_doc["nft"] = get_collection("nfts").find_one({"_id": nft_id})
    return rental_doc


def nft_identity(chain_id: int, contract_address: str, token_id: str) -> Dict[str, Any]:
    return {"chainId": chain_id, "contractAddress": contract_address.lower(), "tokenId": token_id}


def as_utc(value: datetime) -> datetime:
    # pymongo hands back naive UTC datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def generate_nonce() -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(NONCE_LENGTH))


# ------------------------
# Request bodies
# ------------------------
class NonceRequest(Document):
    wallet_address: Optional[str] = None


class RatingRequest(Document):
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=1000)


class NFTRegistration(Document):
    contract_address: str
    token_id: str
    chain_id: int
    owner: str
    metadata: NFTMetadata
    collection: Optional[CollectionInfo] = None
    estimated_value: float = Field(..., ge=0)


class ListingTerms(RentalTerms):
    description: str = Field(..., min_length=1, max_length=1000)


class RentalListingRequest(Document):
    nft_contract_address: str
    nft_token_id: str
    nft_chain_id: int
    lender: str
    daily_price: float = Field(..., gt=0)
    currency: Literal["ETH", "MATIC", "USDC", "DAI"] = "ETH"
    min_rental_duration: int = Field(1, ge=1, le=365)
    max_rental_duration: int = Field(30, ge=1, le=365)
    collateral_required: float = Field(..., ge=0)
    instant_rent: bool = False
    allowed_use_cases: List[UseCase] = Field(..., min_length=1)
    terms: ListingTerms


class CollateralInput(Document):
    contract_address: str
    token_id: str
    chain_id: int
    estimated_value: float = Field(..., gt=0)


class LoanRequest(Document):
    borrower: str
    collateral_nfts: List[CollateralInput] = Field(..., min_length=1, alias="collateralNFTs")
    loan_amount: float = Field(..., gt=0)
    currency: Literal["ETH", "MATIC", "USDC", "DAI", "USDT"]
    interest_rate: float = Field(..., gt=0, le=100)
    duration: int = Field(..., ge=1, le=365)
    purpose: str = Field(..., max_length=500)
    repayment_schedule: Literal["lump_sum", "monthly", "weekly"] = "lump_sum"
    auto_liquidation: bool = True


# ------------------------
# Health & ops
# ------------------------
@app.get("/health")
def health():
    database = "disconnected"
    if db is not None:
        try:
            db.command("ping")
            database = "connected"
        except Exception as e:
            logger.warning("Database ping failed: %s", e)
    return {
        "success": True,
        "message": "Lendify Backend with Real Database is running",
        "timestamp": utcnow().isoformat(),
        "database": database,
    }


@app.get("/api/{service}/health")
def service_health(service: str):
    if service not in SERVICES:
        raise HTTPException(status_code=404)
    return {
        "success": True,
        "service": f"{service[0].upper()}{service[1:]} API",
        "message": "Service is healthy",
        "timestamp": utcnow().isoformat(),
    }


@app.get("/api/stats")
def stats():
    users = get_collection("users")
    nfts = get_collection("nfts")
    rentals = get_collection("rentals")
    loans = get_collection("loans")
    return {
        "success": True,
        "data": {
            "users": users.count_documents({}),
            "nfts": nfts.count_documents({}),
            "totalRentals": rentals.count_documents({}),
            "totalLoans": loans.count_documents({}),
            "availableRentals": rentals.count_documents({"status": "active"}),
            "activeLendingRequests": loans.count_documents({"status": "requested"}),
            "timestamp": utcnow().isoformat(),
        },
    }


@app.get("/api/db/test")
def test_database():
    if db is None:
        return {
            "success": False,
            "message": "Database connection is not active",
            "state": "disconnected",
        }
    try:
        db_stats = db.command("dbstats")
    except Exception as e:
        logger.error("Database connection test failed: %s", e)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Database connection test failed", "details": str(e)[:200]},
        )
    return {
        "success": True,
        "message": "Database connection is active",
        "state": "connected",
        "database": db.name,
        "collections": db_stats.get("collections"),
        "dataSize": db_stats.get("dataSize"),
        "storageSize": db_stats.get("storageSize"),
    }


# ------------------------
# Auth
# ------------------------
@app.post("/api/auth/nonce")
def create_nonce(payload: NonceRequest):
    if not payload.wallet_address or not payload.wallet_address.strip():
        raise HTTPException(status_code=400, detail="Wallet address is required")
    address = payload.wallet_address.strip().lower()

    now = utcnow()
    nonce = generate_nonce()
    expires_at = now + NONCE_TTL

    defaults = User(wallet_address=address).model_dump(by_alias=True, exclude={"wallet_address", "temp_auth"})
    defaults["createdAt"] = now
    get_collection("users").update_one(
        {"walletAddress": address},
        {
            "$set": {
                "tempAuth": TempAuth(nonce=nonce, expires_at=expires_at).model_dump(by_alias=True),
                "updatedAt": now,
            },
            "$setOnInsert": defaults,
        },
        upsert=True,
    )
    logger.info("Issued nonce for %s", address)

    return {
        "success": True,
        "data": {
            "nonce": nonce,
            "message": (
                "Please sign this message to authenticate with Lendify:\n\n"
                f"Nonce: {nonce}\nTimestamp: {now.isoformat()}"
            ),
            "expiresAt": expires_at.isoformat(),
        },
    }


@app.get("/api/auth/user/{address}")
def get_user_profile(address: str):
    projection = {
        "walletAddress": 1,
        "username": 1,
        "avatar": 1,
        "bio": 1,
        "isVerified": 1,
        "reputation": 1,
        "profileCompleted": 1,
        "createdAt": 1,
    }
    user = get_collection("users").find_one({"walletAddress": address.lower()}, projection)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": {"user": serialize_doc(user)}}


# ------------------------
# NFTs
# ------------------------
@app.get("/api/nft/available")
def available_nfts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    chain_id: Optional[int] = Query(None, alias="chainId"),
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    sort_by: Literal["recent", "price", "rating", "trending"] = Query("recent", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
):
    filter_: Dict[str, Any] = {"rental.isAvailable": True, "status": "active"}
    if chain_id is not None:
        filter_["chainId"] = chain_id
    if category:
        filter_["metadata.category"] = category
    if min_price is not None or max_price is not None:
        price_cond: Dict[str, Any] = {}
        if min_price is not None:
            price_cond["$gte"] = min_price
        if max_price is not None:
            price_cond["$lte"] = max_price
        filter_["rental.avgDailyPrice"] = price_cond
    sort = [(NFT_SORT_FIELDS[sort_by], 1 if sort_order == "asc" else -1)]
    result = paginate(get_collection("nfts"), filter_, sort, page, limit)
    return {"success": True, "data": {"nfts": serialize_doc(result["items"]), "pagination": result["pagination"]}}


@app.get("/api/nft/trending")
def trending_nfts(
    limit: int = Query(20, ge=1, le=100),
    chain_id: Optional[int] = Query(None, alias="chainId"),
):
    filter_: Dict[str, Any] = {"status": "active"}
    if chain_id is not None:
        filter_["chainId"] = chain_id
    cursor = get_collection("nfts").find(filter_).sort("analytics.trendingScore", -1).limit(limit)
    return {"success": True, "data": serialize_doc(list(cursor))}


@app.get("/api/nft/search")
def search_nfts(
    q: Optional[str] = Query(None, description="Matches NFT name, description and collection name"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    chain_id: Optional[int] = Query(None, alias="chainId"),
    category: Optional[str] = None,
):
    if not q:
        raise HTTPException(status_code=400, detail="Search query is required")
    pattern = re.escape(q)
    filter_: Dict[str, Any] = {
        "$or": [
            {"metadata.name": {"$regex": pattern, "$options": "i"}},
            {"metadata.description": {"$regex": pattern, "$options": "i"}},
            {"collection.name": {"$regex": pattern, "$options": "i"}},
        ],
        "status": "active",
    }
    if chain_id is not None:
        filter_["chainId"] = chain_id
    if category:
        filter_["metadata.category"] = category
    result = paginate(get_collection("nfts"), filter_, [("analytics.trendingScore", -1)], page, limit)
    return {"success": True, "data": {"nfts": serialize_doc(result["items"]), "pagination": result["pagination"]}}


@app.get("/api/nft/owner/{owner_address}")
def nfts_by_owner(
    owner_address: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    chain_id: Optional[int] = Query(None, alias="chainId"),
    status: Optional[Literal["active", "listed"]] = None,
):
    filter_: Dict[str, Any] = {"owner": owner_address.lower(), "status": "active"}
    if chain_id is not None:
        filter_["chainId"] = chain_id
    if status == "listed":
        filter_["rental.isAvailable"] = True
    result = paginate(get_collection("nfts"), filter_, [("createdAt", -1)], page, limit)
    return {"success": True, "data": {"nfts": serialize_doc(result["items"]), "pagination": result["pagination"]}}


@app.get("/api/nft/{chain_id}/{contract_address}/{token_id}")
def get_nft(chain_id: int, contract_address: str, token_id: str):
    nft = get_collection("nfts").find_one_and_update(
        nft_identity(chain_id, contract_address, token_id),
        {"$inc": {"analytics.views": 1}},
        return_document=ReturnDocument.BEFORE,
    )
    if not nft:
        raise HTTPException(status_code=404, detail="NFT not found")
    return {"success": True, "data": serialize_doc(nft)}


@app.get("/api/nft/{chain_id}/{contract_address}/{token_id}/analytics")
def nft_analytics(
    chain_id: int,
    contract_address: str,
    token_id: str,
    timeframe: Literal["7d", "30d", "90d"] = "30d",
):
    nft = get_collection("nfts").find_one(nft_identity(chain_id, contract_address, token_id))
    if not nft:
        raise HTTPException(status_code=404, detail="NFT not found")

    end = utcnow()
    start = end - TIMEFRAMES[timeframe]
    pricing = nft.get("pricing", {})
    rental = nft.get("rental", {})
    analytics = nft.get("analytics", {})
    history = [p for p in pricing.get("priceHistory", []) if start <= as_utc(p["timestamp"]) <= end]
    return {
        "success": True,
        "data": {
            "basic": {
                key: analytics.get(key, 0)
                for key in ("views", "favorites", "shares", "demandScore", "rarityScore", "utilityScore", "trendingScore")
            },
            "rental": {
                key: rental.get(key)
                for key in ("totalRentals", "successfulRentals", "totalRevenue", "avgDailyPrice", "avgRentalDuration", "ratings")
            },
            "pricing": {
                "currentValue": pricing.get("estimatedValue"),
                "lastSalePrice": pricing.get("lastSalePrice"),
                "floorPrice": pricing.get("currentFloorPrice"),
                "priceHistory": serialize_doc(history),
            },
            "timeframe": {"start": start.isoformat(), "end": end.isoformat(), "period": timeframe},
        },
    }


@app.post("/api/nft/{chain_id}/{contract_address}/{token_id}/favorite")
def favorite_nft(chain_id: int, contract_address: str, token_id: str):
    result = get_collection("nfts").update_one(
        nft_identity(chain_id, contract_address, token_id),
        {"$inc": {"analytics.favorites": 1}},
    )
    if not result.matched_count:
        raise HTTPException(status_code=404, detail="NFT not found")
    return {"success": True, "message": "NFT added to favorites"}


@app.post("/api/nft/{chain_id}/{contract_address}/{token_id}/rate")
def rate_nft(chain_id: int, contract_address: str, token_id: str, payload: RatingRequest):
    nfts = get_collection("nfts")
    nft = nfts.find_one_and_update(
        nft_identity(chain_id, contract_address, token_id),
        {"$inc": {f"rental.ratings.breakdown.{payload.rating}": 1, "rental.ratings.count": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not nft:
        raise HTTPException(status_code=404, detail="NFT not found")

    ratings = nft["rental"]["ratings"]
    weighted = sum(int(star) * count for star, count in ratings["breakdown"].items())
    average = weighted / ratings["count"]
    nfts.update_one({"_id": nft["_id"]}, {"$set": {"rental.ratings.average": average, "updatedAt": utcnow()}})
    logger.info("NFT %s rated %s (average now %.2f)", nft["_id"], payload.rating, average)

    return {
        "success": True,
        "message": "Rating submitted successfully",
        "data": {"newAverage": average, "totalRatings": ratings["count"]},
    }


@app.post("/api/nft", status_code=201)
def register_nft(payload: NFTRegistration):
    nfts = get_collection("nfts")
    contract_address = payload.contract_address.lower()
    owner = payload.owner.lower()
    identity = {"contractAddress": contract_address, "tokenId": payload.token_id, "chainId": payload.chain_id}
    if nfts.find_one(identity):
        raise HTTPException(status_code=409, detail="NFT already registered")

    nft = NFT(
        contract_address=contract_address,
        token_id=payload.token_id,
        chain_id=payload.chain_id,
        owner=owner,
        metadata=payload.metadata,
        collection=payload.collection or CollectionInfo(),
        pricing=NFTPricing(
            estimated_value=payload.estimated_value,
            price_history=[PricePoint(price=payload.estimated_value, timestamp=utcnow())],
        ),
    )
    nft_id = create_document("nfts", nft)
    get_collection("users").update_one({"walletAddress": owner}, {"$inc": {"reputation.totalListings": 1}})
    logger.info("Registered NFT %s:%s on chain %s", contract_address, payload.token_id, payload.chain_id)

    doc = nfts.find_one({"_id": ObjectId(nft_id)})
    return {"success": True, "message": "NFT registered successfully", "data": serialize_doc(doc)}


# ------------------------
# Rentals
# ------------------------
@app.get("/api/rental/available")
def available_rentals(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    use_case: Optional[str] = Query(None, alias="useCase"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
):
    filter_: Dict[str, Any] = {"status": "active"}
    if use_case:
        filter_["settings.allowedUseCases"] = use_case
    if min_price is not None or max_price is not None:
        price_cond: Dict[str, Any] = {}
        if min_price is not None:
            price_cond["$gte"] = min_price
        if max_price is not None:
            price_cond["$lte"] = max_price
        filter_["pricing.dailyPrice"] = price_cond
    result = paginate(get_collection("rentals"), filter_, [("createdAt", -1)], page, limit)
    rentals = [populate_nft(doc) for doc in result["items"]]
    return {"success": True, "data": {"rentals": serialize_doc(rentals), "pagination": result["pagination"]}}


@app.get("/api/rental/{rental_id}")
def get_rental(rental_id: str):
    rental = get_collection("rentals").find_one({"_id": to_object_id(rental_id)})
    if not rental:
        raise HTTPException(status_code=404, detail="Rental not found")
    return {"success": True, "data": {"rental": serialize_doc(populate_nft(rental))}}


@app.post("/api/rental/list", status_code=201)
def list_rental(payload: RentalListingRequest):
    nfts = get_collection("nfts")
    contract_address = payload.nft_contract_address.lower()
    lender = payload.lender.lower()
    nft = nfts.find_one({
        "contractAddress": contract_address,
        "tokenId": payload.nft_token_id,
        "chainId": payload.nft_chain_id,
    })
    if not nft:
        raise HTTPException(status_code=404, detail="NFT not found. Please register the NFT first.")
    if nft.get("owner", "").lower() != lender:
        raise HTTPException(status_code=403, detail="You do not own this NFT")
    if nft.get("rental", {}).get("isAvailable"):
        raise HTTPException(status_code=409, detail="NFT is already listed for rent or currently rented")

    rental = Rental(
        nft=nft["_id"],
        lender=lender,
        pricing=RentalPricing(
            daily_price=payload.daily_price,
            currency=payload.currency,
            collateral_required=payload.collateral_required,
        ),
        duration=RentalDuration(min=payload.min_rental_duration, max=payload.max_rental_duration),
        settings=RentalSettings(instant_rent=payload.instant_rent, allowed_use_cases=payload.allowed_use_cases),
        terms=payload.terms,
        blockchain=ChainRef(
            chain_id=payload.nft_chain_id,
            contract_address=contract_address,
            token_id=payload.nft_token_id,
        ),
    )
    rental_id = create_document("rentals", rental)
    nfts.update_one(
        {"_id": nft["_id"]},
        {"$set": {
            "rental.isAvailable": True,
            "rental.avgDailyPrice": payload.daily_price,
            "rental.currentListing": ObjectId(rental_id),
            "updatedAt": utcnow(),
        }},
    )
    logger.info("Listed NFT %s for rent as %s", nft["_id"], rental_id)

    doc = get_collection("rentals").find_one({"_id": ObjectId(rental_id)})
    return {"success": True, "message": "Rental listing created successfully", "data": {"rental": serialize_doc(populate_nft(doc))}}


# ------------------------
# Lending
# ------------------------
@app.get("/api/lending/requests")
def loan_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    currency: Optional[str] = None,
    max_ltv: Optional[float] = Query(None, alias="maxLTV"),
):
    filter_: Dict[str, Any] = {"status": "requested"}
    if currency:
        filter_["terms.currency"] = currency
    if max_ltv is not None:
        filter_["terms.ltvRatio"] = {"$lte": max_ltv}
    result = paginate(get_collection("loans"), filter_, [("createdAt", -1)], page, limit)
    return {"success": True, "data": {"loanRequests": serialize_doc(result["items"]), "pagination": result["pagination"]}}


@app.get("/api/lending/{loan_id}")
def get_loan(loan_id: str):
    loan = get_collection("loans").find_one({"_id": to_object_id(loan_id)})
    if not loan:
        raise HTTPException(status_code=404, detail="Loan not found")
    return {"success": True, "data": {"loan": serialize_doc(loan)}}


@app.post("/api/lending/request", status_code=201)
def request_loan(payload: LoanRequest):
    nfts = get_collection("nfts")
    borrower = payload.borrower.lower()
    pledged = []
    for c in payload.collateral_nfts:
        contract_address = c.contract_address.lower()
        nft = nfts.find_one({"contractAddress": contract_address, "tokenId": c.token_id, "chainId": c.chain_id})
        if not nft:
            raise HTTPException(status_code=404, detail=f"NFT not found: {contract_address}:{c.token_id}")
        if nft.get("owner", "").lower() != borrower:
            raise HTTPException(status_code=403, detail=f"You do not own NFT: {contract_address}:{c.token_id}")
        pledged.append((nft["_id"], c))

    total_collateral = sum(c.estimated_value for c in payload.collateral_nfts)
    ltv_ratio = payload.loan_amount * 100 / total_collateral
    if ltv_ratio > MAX_LTV:
        raise HTTPException(status_code=400, detail=f"Loan amount exceeds maximum {MAX_LTV}% LTV ratio")

    # simple interest over the full term
    total_interest = payload.loan_amount * payload.interest_rate * payload.duration / (365 * 100)
    now = utcnow()
    loan = Loan(
        borrower=borrower,
        collateral=[
            Collateral(
                nft=nft_id,
                contract_address=c.contract_address.lower(),
                token_id=c.token_id,
                chain_id=c.chain_id,
                estimated_value=c.estimated_value,
                locked_at=now,
            )
            for nft_id, c in pledged
        ],
        terms=LoanTerms(
            principal=payload.loan_amount,
            currency=payload.currency,
            interest_rate=payload.interest_rate,
            duration=payload.duration,
            total_repayment=payload.loan_amount + total_interest,
            repayment_schedule=payload.repayment_schedule,
            ltv_ratio=ltv_ratio,
        ),
        purpose=payload.purpose,
        settings=LoanSettings(auto_liquidation=payload.auto_liquidation),
    )
    loan_id = create_document("loans", loan)
    logger.info("Loan request %s created for %s (LTV %.1f%%)", loan_id, loan.borrower, ltv_ratio)

    doc = get_collection("loans").find_one({"_id": ObjectId(loan_id)})
    return {"success": True, "message": "Loan request created successfully", "data": {"loan": serialize_doc(doc)}}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
