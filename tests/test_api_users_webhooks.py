"""
Tests for the credits, plan catalogue and billing webhook endpoints.
"""

import hashlib
import hmac
import json

import pytest

from tubedigest.config import settings
from tubedigest.database.models import PlanType

SECRET = 'whsec_test_secret'


def sign(body: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()


@pytest.fixture
def billing_secret(monkeypatch):
    monkeypatch.setattr(settings, 'billing_webhook_secret', SECRET)
    return SECRET


class TestCreditsEndpoint:

    def test_first_access_creates_free_plan(self, client, auth_headers):
        response = client.get('/api/v1/users/me/credits', headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['plan'] == 'free'
        assert data['summaries_left'] == 3
        assert data['summaries_limit'] == 3
        assert data['subscription_status'] == 'active'

    def test_reflects_consumed_summaries(self, client, auth_headers):
        client.post(
            '/api/v1/summaries',
            json={'sourceReference': 'https://youtu.be/dQw4w9WgXcQ'},
            headers=auth_headers
        )

        data = client.get('/api/v1/users/me/credits', headers=auth_headers).json()
        assert data['summaries_left'] == 2

    def test_requires_identity(self, client):
        assert client.get('/api/v1/users/me/credits').status_code == 401


class TestPlansEndpoint:

    def test_lists_all_plans(self, client):
        plans = client.get('/api/v1/plans').json()

        assert [plan['id'] for plan in plans] == ['free', 'pro', 'enterprise']
        assert [plan['summaries_limit'] for plan in plans] == [3, 20, 50]
        assert plans[1]['price'] == 9.99


class TestBillingWebhook:

    def _post(self, client, event, signature=None):
        body = json.dumps(event).encode('utf-8')
        headers = {'Content-Type': 'application/json'}
        if signature is not False:
            headers['X-Billing-Signature'] = signature or sign(body)
        return client.post('/api/v1/webhooks/billing', content=body, headers=headers)

    def test_checkout_upgrades_plan(self, client, auth_headers, billing_secret):
        response = self._post(client, {
            'type': 'checkout.completed',
            'data': {
                'user_id': 'user_alice',
                'plan': 'enterprise',
                'customer_id': 'cus_123',
                'subscription_id': 'sub_456',
            },
        })

        assert response.status_code == 200
        assert response.json() == {'received': True, 'applied': True}

        data = client.get('/api/v1/users/me/credits', headers=auth_headers).json()
        assert data['plan'] == 'enterprise'
        assert data['summaries_left'] == 50
        assert data['billing_customer_id'] == 'cus_123'
        assert data['subscription_id'] == 'sub_456'

    def test_subscription_deleted_downgrades(self, client, auth_headers, billing_secret, credits_service):
        credits_service.update_credits('user_alice', plan=PlanType.PRO, summaries_left=12)

        response = self._post(client, {
            'type': 'subscription.deleted',
            'data': {'user_id': 'user_alice', 'subscription_id': 'sub_456'},
        })

        assert response.status_code == 200
        data = client.get('/api/v1/users/me/credits', headers=auth_headers).json()
        assert data['plan'] == 'free'
        assert data['summaries_left'] == 3
        assert data['subscription_status'] == 'canceled'

    def test_unknown_event_ignored(self, client, billing_secret):
        response = self._post(client, {'type': 'invoice.paid', 'data': {'user_id': 'user_alice'}})

        assert response.status_code == 200
        assert response.json() == {'received': True, 'applied': False}

    def test_bad_signature_rejected(self, client, billing_secret):
        response = self._post(client, {'type': 'checkout.completed'}, signature='deadbeef')

        assert response.status_code == 400
        assert response.json()['detail'] == 'Webhook signature verification failed'

    def test_missing_signature_rejected(self, client, billing_secret):
        response = self._post(client, {'type': 'checkout.completed'}, signature=False)
        assert response.status_code == 400

    def test_unconfigured_secret_rejects_everything(self, client, monkeypatch):
        monkeypatch.setattr(settings, 'billing_webhook_secret', None)
        response = self._post(client, {'type': 'checkout.completed', 'data': {'user_id': 'user_alice'}})
        assert response.status_code == 400

    def test_signed_invalid_json_rejected(self, client, billing_secret):
        body = b'not json'
        response = client.post(
            '/api/v1/webhooks/billing',
            content=body,
            headers={'X-Billing-Signature': sign(body)}
        )
        assert response.status_code == 400
        assert response.json()['detail'] == 'Invalid JSON payload'

    def test_event_without_user_rejected(self, client, billing_secret):
        response = self._post(client, {'type': 'checkout.completed', 'data': {}})
        assert response.status_code == 400

    def test_event_with_list_data_rejected(self, client, billing_secret):
        response = self._post(client, {'type': 'checkout.completed', 'data': ['user_alice']})

        assert response.status_code == 400
        assert 'must be an object' in response.json()['detail']
