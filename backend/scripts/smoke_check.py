"""Run a quick end-to-end check against an in-process app.

Uses a throwaway SQLite file, logs in as the bootstrap admin and a
Telegram learner, and hits one endpoint from each route group.
Exits non-zero on the first unexpected status.
"""

import os
import sys
import tempfile

from fastapi.testclient import TestClient


def main() -> int:
    tmp = tempfile.mkdtemp(prefix="examprep-smoke-")
    os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(tmp, 'smoke.db')}")
    os.environ.setdefault("ADMIN_USERNAME", "admin")
    os.environ.setdefault("ADMIN_PASSWORD", "smoke-password")

    from examprep.config import Settings
    from examprep.main import create_app

    client = TestClient(create_app(Settings()))
    checks = []

    resp = client.post("/auth/admin/login", json={"username": "admin", "password": "smoke-password"})
    checks.append(("admin login", resp.status_code, 200))
    admin = {"Authorization": f"Bearer {resp.json().get('accessToken', '')}"}

    resp = client.post("/auth/telegram", json={"telegramId": "smoke-1", "displayName": "Smoke", "exam": "NEET_PG"})
    checks.append(("telegram login", resp.status_code, 200))
    learner = {"Authorization": f"Bearer {resp.json().get('accessToken', '')}"}

    checks.append(("health", client.get("/health").status_code, 200))
    checks.append(("me", client.get("/me", headers=learner).status_code, 200))
    checks.append(("wallet", client.get("/wallet", headers=learner).status_code, 200))
    checks.append(("admin users", client.get("/admin/users", headers=admin).status_code, 200))
    checks.append((
        "time series",
        client.get("/admin/analytics/time-series", params={"metric": "active_users"}, headers=admin).status_code,
        200,
    ))
    checks.append(("admin forbidden for learner", client.get("/admin/users", headers=learner).status_code, 401))

    failed = False
    for name, got, want in checks:
        ok = got == want
        failed = failed or not ok
        print(f"{'OK  ' if ok else 'FAIL'} {name}: {got} (expected {want})")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
