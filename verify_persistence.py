"""
Manual persistence check against a running database.

Starts the API, logs in as the seeded admin, creates a warehouse with one
registered truck, restarts the API and checks both are still there.
"""

import time
import subprocess
import httpx
import sys
import os
import signal

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"
ADMIN = {"username": os.environ.get("DEFAULT_ADMIN_USERNAME", "admin"),
         "password": os.environ.get("DEFAULT_ADMIN_PASSWORD", "admin123")}
WAREHOUSE_NAME = "Persistence Check"


def start_server():
    return subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "backend.app.main:app", "--host", "127.0.0.1", "--port", "8000"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )


def stop_server(proc):
    proc.send_signal(signal.SIGTERM)
    proc.wait()


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for _ in range(retries):
        try:
            if httpx.get(url).status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False


def login():
    resp = httpx.post(f"{BASE_URL}{API_PREFIX}/auth/login", json=ADMIN)
    if resp.status_code != 200:
        raise RuntimeError(f"Login failed: {resp.status_code} {resp.text}")
    return {"Authorization": f"Bearer {resp.json()['accessToken']}"}


def run_verification():
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = start_server()
    try:
        if not wait_for_server():
            out, err = proc.communicate(timeout=2)
            print("Server Stdout:", out.decode())
            print("Server Stderr:", err.decode())
            raise RuntimeError("Server start failed")

        print("\n--- [Step 2] Creating warehouse and truck ---")
        headers = login()
        resp = httpx.post(
            f"{BASE_URL}{API_PREFIX}/warehouses",
            json={"name": WAREHOUSE_NAME, "location": "Test"},
            headers=headers,
        )
        if resp.status_code != 201:
            raise RuntimeError(f"Warehouse creation failed: {resp.status_code} {resp.text}")
        warehouse_id = resp.json()["id"]

        resp = httpx.post(
            f"{BASE_URL}{API_PREFIX}/warehouses/{warehouse_id}/trucks",
            json={"immatriculation": "PERSIST-01", "transporteur": "Check"},
            headers=headers,
        )
        if resp.status_code != 201:
            raise RuntimeError(f"Truck registration failed: {resp.status_code} {resp.text}")
        print(f"✅ Warehouse {warehouse_id} and truck {resp.json()['id']} created")
    finally:
        print("\n--- [Step 3] Stopping Server ---")
        stop_server(proc)

    time.sleep(2)  # Wait for port release

    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = start_server()
    try:
        if not wait_for_server():
            raise RuntimeError("Server restart failed")

        headers = login()
        resp = httpx.get(f"{BASE_URL}{API_PREFIX}/warehouses/{warehouse_id}/trucks", headers=headers)
        plates = [t["immatriculation"] for t in resp.json().get("trucks", [])]
        if resp.status_code == 200 and "PERSIST-01" in plates:
            print("✅ Truck persisted across restart")
        else:
            raise RuntimeError(f"Truck missing after restart: {resp.status_code} {resp.text}")

        httpx.delete(f"{BASE_URL}{API_PREFIX}/warehouses/{warehouse_id}", headers=headers)
    finally:
        print("\n--- [Step 5] Stopping Server ---")
        stop_server(proc2)


if __name__ == "__main__":
    run_verification()
