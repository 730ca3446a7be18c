import json
import os
import tempfile

from fastapi.testclient import TestClient

from spendwatch.core.config import Settings
from spendwatch.db.dal import Database
from spendwatch.db.seed import seed_demo
from spendwatch.main import create_app

"""Smoke test for the threshold check flow.
Scenario:
1. Seed demo data (personal budget at 95%, shared budget at 75%)
2. Check the personal budget -> 70 and 90 fire on email + SMS for Alice
3. Check again -> nothing new
4. Check the shared budget -> 70 fires for every reachable member channel
5. List Alice's alerts and acknowledge the newest one
"""


def run():
    with tempfile.TemporaryDirectory() as d:
        settings = Settings(db_path=os.path.join(d, "smoke.db"))
        app = create_app(settings_override=settings)
        client = TestClient(app)
        ids = seed_demo(Database(settings.db_path))
        alice = {"X-User-Id": str(ids["alice"])}

        status = client.get(f"/budgets/{ids['personal_budget']}/status", headers=alice).json()
        first = client.post(f"/budgets/{ids['personal_budget']}/check", headers=alice).json()
        second = client.post(f"/budgets/{ids['personal_budget']}/check", headers=alice).json()
        shared = client.post(f"/budgets/{ids['shared_budget']}/check", headers=alice).json()
        alerts = client.get("/alerts/", headers=alice).json()
        acked = client.post(f"/alerts/{alerts[0]['id']}/acknowledge", headers=alice).json()

        print(
            json.dumps(
                {
                    "status": status,
                    "first_check": first,
                    "second_check": second,
                    "shared_check": shared,
                    "alice_alerts": len(alerts),
                    "acknowledged": acked["acknowledged"],
                },
                indent=2,
            )
        )
        assert first["sent"] == 4, first
        assert second["alerts_written"] == 0, second
        assert shared["sent"] == 4, shared
        print("Budget alert smoke test: PASS")


if __name__ == "__main__":
    run()
