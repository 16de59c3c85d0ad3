import os

from locust import HttpUser, task, between

# Bearer token for an admin account, minted by the identity provider.
ADMIN_TOKEN = os.getenv("CONTENTFLOW_ADMIN_TOKEN", "")
NAMESPACE = os.getenv("CONTENTFLOW_NAMESPACE", "LOAD")


class ReviewerUser(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = {"Authorization": f"Bearer {ADMIN_TOKEN}"}
        self.client.post(
            "/api/profiles",
            json={"name": "Load test", "code": NAMESPACE},
            headers=self.headers,
        )

    @task(5)
    def allocate_identifier(self):
        self.client.post(
            f"/api/sequences/{NAMESPACE}/allocate",
            headers=self.headers,
            name="/api/sequences/[ns]/allocate",
        )

    @task(2)
    def submit_and_approve(self):
        r = self.client.post(
            "/api/content",
            json={"title": "bench script", "namespace_code": NAMESPACE},
            headers=self.headers,
        )
        if r.status_code != 200:
            return
        record_id = r.json()["id"]
        self.client.post(
            f"/api/content/{record_id}/approve",
            json={},
            headers=self.headers,
            name="/api/content/[id]/approve",
        )

    @task(1)
    def submit_and_reject(self):
        r = self.client.post(
            "/api/content",
            json={"title": "bench script", "namespace_code": NAMESPACE},
            headers=self.headers,
        )
        if r.status_code != 200:
            return
        record_id = r.json()["id"]
        self.client.post(
            f"/api/content/{record_id}/reject",
            json={"feedback": "load"},
            headers=self.headers,
            name="/api/content/[id]/reject",
        )

    @task(3)
    def list_content(self):
        self.client.get("/api/content", headers=self.headers)
