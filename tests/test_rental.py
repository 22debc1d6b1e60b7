from bson import ObjectId

LENDER = "0x742d35cc6bf8fccb87a23180b10b7e9ba8b3a0c7"
NEW_NFT = {
    "contractAddress": "0x1111111111111111111111111111111111111111",
    "tokenId": "7",
    "chainId": 1,
    "owner": LENDER,
    "metadata": {"name": "Land Plot #7", "category": "metaverse"},
    "estimatedValue": 2.0,
}


def listing(**overrides):
    body = {
        "nftContractAddress": NEW_NFT["contractAddress"],
        "nftTokenId": NEW_NFT["tokenId"],
        "nftChainId": NEW_NFT["chainId"],
        "lender": LENDER,
        "dailyPrice": 0.02,
        "collateralRequired": 0.5,
        "allowedUseCases": ["metaverse"],
        "terms": {"description": "Build whatever you like."},
    }
    body.update(overrides)
    return body


def test_available_rentals_populates_nft(client, seeded):
    res = client.get("/api/rental/available")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["pagination"]["total"] == 1
    rental = data["rentals"][0]
    assert rental["pricing"]["dailyPrice"] == 0.05
    assert rental["settings"]["instantRent"] is True
    assert rental["nft"]["metadata"]["name"] == "Cosmic Dragon #1001"


def test_available_rentals_filters(client, seeded):
    assert client.get("/api/rental/available", params={"useCase": "gaming"}).json()["data"]["pagination"]["total"] == 1
    assert client.get("/api/rental/available", params={"useCase": "pfp"}).json()["data"]["rentals"] == []
    assert client.get("/api/rental/available", params={"minPrice": 0.1}).json()["data"]["rentals"] == []
    assert len(client.get("/api/rental/available", params={"maxPrice": 0.05}).json()["data"]["rentals"]) == 1
    assert client.get("/api/rental/available", params={"minPrice": 0.01, "maxPrice": 0.04}).json()["data"]["rentals"] == []


def test_inactive_rentals_hidden(client, seeded):
    seeded["rentals"].update_many({}, {"$set": {"status": "completed"}})
    assert client.get("/api/rental/available").json()["data"]["rentals"] == []


def test_rental_detail(client, seeded):
    rental_id = str(seeded["rentals"].find_one()["_id"])
    res = client.get(f"/api/rental/{rental_id}")
    assert res.status_code == 200
    rental = res.json()["data"]["rental"]
    assert rental["id"] == rental_id
    assert rental["terms"]["description"] == "Perfect for gaming and metaverse adventures."
    assert rental["nft"]["tokenId"] == "1001"


def test_rental_detail_not_found(client, seeded):
    res = client.get(f"/api/rental/{ObjectId()}")
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Rental not found"}


def test_list_rental(client, seeded):
    assert client.post("/api/nft", json=NEW_NFT).status_code == 201

    res = client.post("/api/rental/list", json=listing())
    assert res.status_code == 201
    rental = res.json()["data"]["rental"]
    assert rental["status"] == "active"
    assert rental["lender"] == LENDER
    assert rental["duration"] == {"min": 1, "max": 30}
    assert rental["pricing"]["currency"] == "ETH"
    assert rental["blockchain"]["tokenId"] == "7"
    assert rental["nft"]["metadata"]["name"] == "Land Plot #7"

    nft = seeded["nfts"].find_one({"tokenId": "7"})
    assert nft["rental"]["isAvailable"] is True
    assert nft["rental"]["avgDailyPrice"] == 0.02
    assert nft["rental"]["currentListing"] == ObjectId(rental["id"])
    assert client.get("/api/stats").json()["data"]["availableRentals"] == 2


def test_list_rental_twice_conflicts(client, seeded):
    client.post("/api/nft", json=NEW_NFT)
    assert client.post("/api/rental/list", json=listing()).status_code == 201
    res = client.post("/api/rental/list", json=listing())
    assert res.status_code == 409


def test_list_rental_unknown_nft(client, seeded):
    res = client.post("/api/rental/list", json=listing(nftTokenId="999"))
    assert res.status_code == 404
    assert res.json()["error"] == "NFT not found. Please register the NFT first."


def test_list_rental_wrong_owner(client, seeded):
    client.post("/api/nft", json=NEW_NFT)
    res = client.post("/api/rental/list", json=listing(lender="0x123456789abcdef123456789abcdef123456789a"))
    assert res.status_code == 403


def test_list_rental_validation(client, seeded):
    client.post("/api/nft", json=NEW_NFT)
    assert client.post("/api/rental/list", json=listing(allowedUseCases=[])).status_code == 400
    assert client.post("/api/rental/list", json=listing(dailyPrice=0)).status_code == 400
    assert client.post("/api/rental/list", json=listing(allowedUseCases=["racing"])).status_code == 400


def test_list_rental_requires_terms_description(client, seeded):
    client.post("/api/nft", json=NEW_NFT)
    res = client.post("/api/rental/list", json=listing(terms={}))
    assert res.status_code == 400
    assert res.json()["details"][0]["field"] == "terms.description"
    assert client.post("/api/rental/list", json=listing(terms={"description": "x" * 1001})).status_code == 400
    assert seeded["rentals"].count_documents({}) == 1
