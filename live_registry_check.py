#!/usr/bin/env python3
"""
Live check against a running registry: registers a canary, reads it back
and lists everything. Run the server first (python main.py).
"""
import os
import sys

import requests

API_BASE = os.getenv("REGISTRY_URL", "http://localhost:8000")

CANARY = {
    "identifier": "my-canary",
    "url": "https://example.com/health",
    "method": "GET",
    "status_online": 200,
    "frequency": "30s",
    "fail_after": 3,
}

def pretty_endpoint(endpoint):
    print(f"  - {endpoint['identifier']} → {endpoint['method']} {endpoint['url']}"
          f" | expects {endpoint['status_online']}"
          f" | every {endpoint['frequency']}"
          f" | down after {endpoint['fail_after']} failures")

def run_check() -> bool:
    print("🚀 Canary Registry Live Check")

    # 1. Register (or overwrite) the canary
    print("\n📡 Posting endpoint...")
    res = requests.post(f"{API_BASE}/endpoints/{CANARY['identifier']}", json=CANARY)
    if res.status_code == 201:
        print("✅ Endpoint created")
    elif res.status_code == 204:
        print("✅ Endpoint updated")
    else:
        print("❌ Post failed:", res.status_code, res.text)
        return False

    # 2. Read it back
    print("\n🔍 Reading endpoint...")
    res = requests.get(f"{API_BASE}/endpoints/{CANARY['identifier']}")
    if res.status_code != 200:
        print("❌ Read failed:", res.status_code, res.text)
        return False
    if res.json() != CANARY:
        print("❌ Stored endpoint differs:", res.json())
        return False
    pretty_endpoint(res.json())

    # 3. List everything
    print("\n📋 Registered endpoints:")
    res = requests.get(f"{API_BASE}/endpoints")
    if res.status_code != 200:
        print("❌ Listing failed:", res.status_code, res.text)
        return False
    for endpoint in res.json():
        pretty_endpoint(endpoint)

    return True

if __name__ == "__main__":
    try:
        ok = run_check()
    except requests.exceptions.ConnectionError:
        print(f"❌ Could not connect to server. Make sure it's running on {API_BASE}")
        ok = False
    sys.exit(0 if ok else 1)
