import httpx
import asyncio
import os
import sys

BASE_URL = os.environ.get("TINYLINK_URL", "http://localhost:8000")

async def run_verification() -> bool:
    print(f"Starting verification against {BASE_URL}...\n")

    async with httpx.AsyncClient(base_url=BASE_URL, timeout=10.0) as client:
        # 1. Health Check
        print("1. [Health] Checking /health...")
        try:
            resp = await client.get("/health")
        except httpx.HTTPError as e:
            print(f"   FAIL  Connection Error: {e}")
            return False
        if resp.status_code != 200 or resp.json().get("status") != "ok":
            print(f"   FAIL  Health Check Failed: {resp.text}")
            return False
        print("   OK    Health Check Passed")

        # 2. Create Link
        print("\n2. [API] Creating Short Link...")
        target_url = "https://www.example.com/verify"
        code = "verify-test"

        # Cleanup first if exists
        await client.delete(f"/links/{code}")

        resp = await client.put("/links", json={"target_url": target_url, "code": code})
        if resp.status_code != 201:
            print(f"   FAIL  Create Failed: {resp.status_code} {resp.text}")
            return False
        print(f"   OK    Created: {resp.json()['code']}")

        resp = await client.put("/links", json={"target_url": target_url, "code": code})
        if resp.status_code != 409:
            print(f"   FAIL  Duplicate code not rejected: {resp.status_code}")
            return False
        print("   OK    Duplicate code rejected with 409")

        # 3. Verify Redirect
        print("\n3. [API] Verifying Redirect...")
        resp = await client.get(f"/{code}", follow_redirects=False)
        if resp.status_code != 302 or resp.headers.get("location") != target_url:
            print(f"   FAIL  Redirect Failed: {resp.status_code} {resp.headers.get('location')}")
            return False
        print(f"   OK    Redirect Location matches: {resp.headers['location']}")

        # 4. Verify Stats
        print("\n4. [API] Verifying Click Stats...")
        resp = await client.get(f"/links/{code}")
        if resp.status_code != 200 or resp.json()["total_clicks"] != 1:
            print(f"   FAIL  Stats Failed: {resp.status_code} {resp.text}")
            return False
        print(f"   OK    Click Count updated: {resp.json()['total_clicks']}")

        # 5. Delete
        print("\n5. [API] Deleting Link...")
        resp = await client.delete(f"/links/{code}")
        if resp.status_code != 204 or (await client.get(f"/{code}")).status_code != 404:
            print(f"   FAIL  Delete Failed: {resp.status_code}")
            return False
        print("   OK    Deleted, redirect now 404")

    print("\nAll checks passed.")
    return True

if __name__ == "__main__":
    ok = asyncio.run(run_verification())
    sys.exit(0 if ok else 1)
