#!/usr/bin/env python3
"""
End-to-End smoke test for the UniCon moderation service
Runs against a live server and walks the main workflow:
1. Health checks
2. Upload a clean image (should be approved)
3. Upload with inappropriate text (should be blocked)
4. Upload with the quarantine flag (should wait for review)
5. Moderator approves the quarantined case
6. Submit a post and approve it from the post-review queue
"""

import os
import random
import string
import sys
import time

import requests

# 1x1 transparent PNG
PNG_BYTES = (
    b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00'
    b'\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00'
    b'\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82'
)


class UniConE2ERunner:
    def __init__(self, base_url: str = "http://localhost:6217"):
        self.base_url = base_url
        self.session = requests.Session()
        self.session.headers.update({'User-Agent': 'UniCon-E2E-Test/1.0'})

        self.test_suffix = ''.join(random.choices(string.ascii_lowercase, k=8))
        self.user_headers = {'X-User-Id': f'student_{self.test_suffix}'}
        self.admin_headers = {'X-User-Id': f'admin_{self.test_suffix}', 'X-User-Role': 'admin'}

        self.quarantined_case_id = None
        self.post_review_id = None

    def _upload(self, title, description='', quarantine=False):
        return self.session.post(
            f"{self.base_url}/api/moderation/upload",
            headers=self.user_headers,
            data={
                'title': title,
                'description': description,
                'quarantine': 'true' if quarantine else 'false'
            },
            files={'file': ('campus.png', PNG_BYTES, 'image/png')},
            timeout=120
        )

    def check_health(self) -> bool:
        try:
            health = self.session.get(f"{self.base_url}/health", timeout=10)
            moderation = self.session.get(f"{self.base_url}/health/moderation", timeout=10)
            return health.status_code == 200 and moderation.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def check_clean_upload(self) -> bool:
        try:
            response = self._upload('Lost water bottle', 'Blue bottle left in the library')
            return response.status_code == 200 and response.json().get('status') == 'approved'
        except requests.exceptions.RequestException:
            return False

    def check_blocked_upload(self) -> bool:
        try:
            response = self._upload('adult content for sale')
            return response.status_code == 400 and response.json().get('status') == 'rejected'
        except requests.exceptions.RequestException:
            return False

    def check_quarantined_upload(self) -> bool:
        try:
            response = self._upload('Calculus notes', quarantine=True)
            if response.status_code != 202:
                return False
            self.quarantined_case_id = response.json().get('caseId')
            return bool(self.quarantined_case_id)
        except requests.exceptions.RequestException:
            return False

    def check_moderator_review(self) -> bool:
        if not self.quarantined_case_id:
            return False
        try:
            response = self.session.post(
                f"{self.base_url}/api/moderation/review/{self.quarantined_case_id}",
                headers=self.admin_headers,
                json={'action': 'approve', 'notes': 'e2e'},
                timeout=30
            )
            return response.status_code == 200 and \
                response.json()['content']['status'] == 'approved'
        except requests.exceptions.RequestException:
            return False

    def check_post_review(self) -> bool:
        try:
            response = self.session.post(
                f"{self.base_url}/api/posts",
                headers=self.user_headers,
                json={'type': 'skill', 'payload': {'title': 'Guitar lessons',
                                                   'description': 'Beginner friendly'}},
                timeout=30
            )
            if response.status_code != 202:
                return False
            self.post_review_id = response.json().get('caseId')

            response = self.session.post(
                f"{self.base_url}/api/post-reviews/review/{self.post_review_id}",
                headers=self.admin_headers,
                json={'action': 'approve'},
                timeout=30
            )
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

    def run_all(self) -> bool:
        print("🚀 Starting UniCon moderation smoke tests")

        checks = [
            ("Health Check", self.check_health),
            ("Clean Upload", self.check_clean_upload),
            ("Blocked Upload", self.check_blocked_upload),
            ("Quarantined Upload", self.check_quarantined_upload),
            ("Moderator Review", self.check_moderator_review),
            ("Post Review", self.check_post_review),
        ]

        passed = 0
        for name, check in checks:
            if check():
                passed += 1
                print(f"✅ {name}")
            else:
                print(f"❌ {name}")

        print(f"\n📊 {passed}/{len(checks)} checks passed")
        return passed == len(checks)


def main():
    """Main function to run E2E checks"""
    base_url = os.getenv('BASE_URL', 'http://localhost:6217')

    # Wait a moment for the application to be fully ready
    time.sleep(2)

    success = UniConE2ERunner(base_url).run_all()
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
