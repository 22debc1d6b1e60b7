import pytest
from bson import ObjectId

BORROWER = "0x123456789abcdef123456789abcdef123456789a"
DRAGON_OWNER = "0x742d35cc6bf8fccb87a23180b10b7e9ba8b3a0c7"


def loan_request(**overrides):
    body = {
        "borrower": BORROWER,
        "collateralNFTs": [
            {"contractAddress": "0xBC4CA0EDA7647A8AB7C2061C2E118A18A936F13D", "tokenId": "3", "chainId": 1, "estimatedValue": 6},
            {"contractAddress": "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d", "tokenId": "4", "chainId": 1, "estimatedValue": 4},
        ],
        "loanAmount": 5,
        "currency": "ETH",
        "interestRate": 10,
        "duration": 30,
        "purpose": "Bridge financing",
    }
    body.update(overrides)
    return body


@pytest.fixture
def collateral(client, seeded):
    for token_id in ("3", "4"):
        res = client.post("/api/nft", json={
            "contractAddress": "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d",
            "tokenId": token_id,
            "chainId": 1,
            "owner": BORROWER,
            "metadata": {"name": f"Bored Ape #{token_id}", "category": "pfp"},
            "estimatedValue": 5,
        })
        assert res.status_code == 201
    return seeded


def test_loan_requests(client, seeded):
    res = client.get("/api/lending/requests")
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["pagination"]["total"] == 1
    loan = data["loanRequests"][0]
    assert loan["terms"]["ltvRatio"] == 58.8
    assert loan["collateral"][0]["estimatedValue"] == 8.5


def test_loan_requests_filters(client, seeded):
    assert client.get("/api/lending/requests", params={"maxLTV": 50}).json()["data"]["loanRequests"] == []
    assert len(client.get("/api/lending/requests", params={"maxLTV": 60}).json()["data"]["loanRequests"]) == 1
    assert client.get("/api/lending/requests", params={"currency": "USDC"}).json()["data"]["loanRequests"] == []


def test_funded_loans_hidden(client, seeded):
    seeded["loans"].update_many({}, {"$set": {"status": "active"}})
    assert client.get("/api/lending/requests").json()["data"]["pagination"]["total"] == 0


def test_loan_detail(client, seeded):
    loan_id = str(seeded["loans"].find_one()["_id"])
    res = client.get(f"/api/lending/{loan_id}")
    assert res.status_code == 200
    assert res.json()["data"]["loan"]["purpose"] == "Short-term liquidity for new project launch"


def test_loan_detail_not_found(client, seeded):
    res = client.get(f"/api/lending/{ObjectId()}")
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Loan not found"}


def test_request_loan(client, collateral):
    res = client.post("/api/lending/request", json=loan_request())
    assert res.status_code == 201
    loan = res.json()["data"]["loan"]
    assert loan["status"] == "requested"
    assert loan["terms"]["ltvRatio"] == pytest.approx(50.0)
    assert loan["terms"]["totalRepayment"] == pytest.approx(5 + 5 * 10 * 30 / 36500)
    assert loan["terms"]["repaymentSchedule"] == "lump_sum"
    assert loan["settings"] == {"autoLiquidation": True, "gracePeriod": 7}
    assert [c["status"] for c in loan["collateral"]] == ["locked", "locked"]
    assert loan["collateral"][0]["contractAddress"] == "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d"
    assert loan["collateral"][0]["lockedAt"]
    pledged = collateral["nfts"].find_one({"tokenId": "3", "chainId": 1})
    assert loan["collateral"][0]["nft"] == str(pledged["_id"])

    assert client.get("/api/lending/requests").json()["data"]["pagination"]["total"] == 2


def test_request_loan_over_max_ltv(client, collateral):
    res = client.post("/api/lending/request", json=loan_request(loanAmount=8.5))
    assert res.status_code == 400
    assert res.json()["error"] == "Loan amount exceeds maximum 80% LTV ratio"
    assert collateral["loans"].count_documents({}) == 1


def test_request_loan_at_max_ltv(client, collateral):
    assert client.post("/api/lending/request", json=loan_request(loanAmount=8)).status_code == 201


def test_request_loan_validation(client, seeded):
    assert client.post("/api/lending/request", json=loan_request(collateralNFTs=[])).status_code == 400
    assert client.post("/api/lending/request", json=loan_request(currency="BTC")).status_code == 400
    assert client.post("/api/lending/request", json=loan_request(interestRate=150)).status_code == 400


def test_request_loan_unknown_collateral(client, collateral):
    body = loan_request(collateralNFTs=[
        {"contractAddress": "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d", "tokenId": "9", "chainId": 1, "estimatedValue": 10},
    ])
    res = client.post("/api/lending/request", json=body)
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "NFT not found: 0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d:9"}
    assert collateral["loans"].count_documents({}) == 1


def test_request_loan_collateral_not_owned(client, collateral):
    body = loan_request(collateralNFTs=[
        {"contractAddress": "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d", "tokenId": "3", "chainId": 1, "estimatedValue": 6},
        {"contractAddress": "0xa0b86a33e6ba3050e71c8f1d5b23c8b74b0c6d92", "tokenId": "1001", "chainId": 1, "estimatedValue": 4},
    ])
    res = client.post("/api/lending/request", json=body)
    assert res.status_code == 403
    assert res.json()["error"] == "You do not own NFT: 0xa0b86a33e6ba3050e71c8f1d5b23c8b74b0c6d92:1001"
    assert collateral["loans"].count_documents({}) == 1

    res = client.post("/api/lending/request", json=loan_request(borrower=DRAGON_OWNER, collateralNFTs=body["collateralNFTs"][1:]))
    assert res.status_code == 201
