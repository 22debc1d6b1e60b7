"""
Smoke checks against a running Lendify API.

    python smoke.py [base_url]

Walks the public endpoints against seeded data, then fires a few independent
GETs concurrently. Failures are logged and the run continues; exit status is
1 if any check failed.
"""
import os
import sys
import time
import logging
from concurrent.futures import ThreadPoolExecutor

import requests

logger = logging.getLogger("smoke")

DEMO_WALLET = "0x742d35cc6bf8fccb87a23180b10b7e9ba8b3a0c7"
TIMEOUT = 10


class SmokeRun:
    def __init__(self, base_url: str, session=None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.failures = []

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def check(self, name, method, path, expected_status=200, **kwargs):
        try:
            res = self.session.request(method, self.url(path), timeout=TIMEOUT, **kwargs)
        except requests.RequestException as e:
            logger.error("FAIL %s: %s", name, e)
            self.failures.append(name)
            return None
        if res.status_code != expected_status:
            logger.error("FAIL %s: expected %s, got %s %s", name, expected_status, res.status_code, res.text[:200])
            self.failures.append(name)
            return None
        logger.info("ok   %s", name)
        return res.json()

    def health(self):
        body = self.check("server health", "GET", "/health")
        if body and "message" not in body:
            self.failures.append("server health message")
        for service in ["auth", "nft", "rental", "lending"]:
            body = self.check(f"{service} health", "GET", f"/api/{service}/health")
            if body and "message" not in body:
                self.failures.append(f"{service} health message")

    def auth(self):
        self.check("nonce without wallet", "POST", "/api/auth/nonce", expected_status=400, json={})
        body = self.check("nonce", "POST", "/api/auth/nonce", json={"walletAddress": DEMO_WALLET})
        if body:
            logger.info("     nonce %s expires %s", body["data"]["nonce"], body["data"]["expiresAt"])
        body = self.check("user profile", "GET", f"/api/auth/user/{DEMO_WALLET}")
        if body:
            user = body["data"]["user"]
            logger.info("     %s rated %s", user.get("username"), user.get("reputation", {}).get("averageRating"))

    def marketplace(self):
        stats = self.check("stats", "GET", "/api/stats")
        if stats:
            logger.info("     %s", stats["data"])

        body = self.check("available nfts", "GET", "/api/nft/available", params={"limit": 3})
        if body:
            data = body["data"]
            if not isinstance(data.get("nfts"), list) or "pagination" not in data:
                logger.error("FAIL available nfts: unexpected shape")
                self.failures.append("available nfts shape")
            elif data["nfts"]:
                nft = data["nfts"][0]
                path = f"/api/nft/{nft['chainId']}/{nft['contractAddress']}/{nft['tokenId']}"
                self.check("nft details", "GET", path)
                self.check("nft analytics", "GET", f"{path}/analytics", params={"timeframe": "7d"})
        self.check("trending nfts", "GET", "/api/nft/trending", params={"limit": 2})
        self.check("search nfts", "GET", "/api/nft/search", params={"q": "ape"})

        body = self.check("available rentals", "GET", "/api/rental/available", params={"limit": 3})
        if body and body["data"]["rentals"]:
            rental_id = body["data"]["rentals"][0]["id"]
            self.check("rental details", "GET", f"/api/rental/{rental_id}")

        body = self.check("loan requests", "GET", "/api/lending/requests", params={"limit": 3})
        if body and body["data"]["loanRequests"]:
            loan_id = body["data"]["loanRequests"][0]["id"]
            self.check("loan details", "GET", f"/api/lending/{loan_id}")

    def concurrency(self):
        paths = ["/api/nft/available", "/api/nft/trending", "/api/rental/available", "/api/lending/requests"]
        started = time.monotonic()
        with ThreadPoolExecutor(max_workers=len(paths)) as pool:
            futures = [pool.submit(self.session.get, self.url(p), timeout=TIMEOUT) for p in paths]
            statuses = []
            for future in futures:
                try:
                    statuses.append(future.result().status_code)
                except requests.RequestException as e:
                    logger.error("FAIL concurrent request: %s", e)
                    statuses.append(None)
        elapsed_ms = (time.monotonic() - started) * 1000
        all_ok = all(s == 200 for s in statuses)
        logger.info("%d concurrent requests in %.0fms, all 200: %s", len(paths), elapsed_ms, all_ok)
        if not all_ok:
            self.failures.append("concurrent requests")
        return statuses

    def run(self):
        self.health()
        self.auth()
        self.marketplace()
        self.concurrency()
        return not self.failures


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(message)s")
    base_url = argv[0] if argv else os.getenv("API_BASE_URL", "http://localhost:8000")
    run = SmokeRun(base_url)
    if run.run():
        logger.info("All smoke checks passed against %s", base_url)
        return 0
    logger.error("%d check(s) failed: %s", len(run.failures), ", ".join(run.failures))
    return 1


if __name__ == "__main__":
    sys.exit(main())
