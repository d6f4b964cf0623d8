"""Payment gateway settings (Stripe, PayPal) and connection tests.

Gateway config is stored as Fernet-encrypted JSON. Secret fields are
masked in everything returned to the API.
"""

import json
import logging
import os

import requests

from core.utils.crypto import decrypt_value, encrypt_value, mask_secret
from finance.exceptions import GatewayError
from finance.repositories import GatewayRepository

logger = logging.getLogger('practicehub.finance.gateways')

GATEWAY_TYPES = ('stripe', 'paypal')
SECRET_FIELDS = {'secret_key', 'client_secret', 'webhook_secret'}
REQUIRED_FIELDS = {
    'stripe': ('secret_key',),
    'paypal': ('client_id', 'client_secret'),
}

STRIPE_BALANCE_URL = 'https://api.stripe.com/v1/balance'
PAYPAL_TOKEN_URLS = {
    'live': 'https://api-m.paypal.com/v1/oauth2/token',
    'sandbox': 'https://api-m.sandbox.paypal.com/v1/oauth2/token',
}
GATEWAY_TIMEOUT = int(os.environ.get('WEBHOOK_TIMEOUT', '30'))


def mask_config(config):
    return {k: mask_secret(v) if k in SECRET_FIELDS else v for k, v in (config or {}).items()}


class GatewayService:

    def __init__(self):
        self._repo = GatewayRepository()

    def _decode(self, row):
        if not row or not row.get('config_data'):
            return {}
        return json.loads(decrypt_value(row['config_data']))

    def _public(self, row):
        result = {k: v for k, v in row.items() if k != 'config_data'}
        result['config'] = mask_config(self._decode(row))
        return result

    def list_gateways(self, tenant_id):
        return [self._public(r) for r in self._repo.list(tenant_id)]

    def get_gateway(self, tenant_id, gateway_id):
        row = self._repo.get(tenant_id, gateway_id)
        if not row:
            raise GatewayError('Payment gateway not found', 404)
        return self._public(row)

    def create_gateway(self, tenant_id, data):
        gateway_type = (data.get('gateway_type') or '').lower()
        if gateway_type not in GATEWAY_TYPES:
            raise GatewayError(f"gateway_type must be one of {', '.join(GATEWAY_TYPES)}")
        if self._repo.get_by_type(tenant_id, gateway_type):
            raise ValueError(f'A {gateway_type} gateway is already configured')

        config = data.get('config') or {}
        row = self._repo.create(
            tenant_id, gateway_type, bool(data.get('is_enabled', False)),
            encrypt_value(json.dumps(config)))
        logger.info(f'Payment gateway {gateway_type} configured for tenant {tenant_id}')
        return self._public(row)

    def update_gateway(self, tenant_id, gateway_id, data):
        """Update flags/config. Masked secret values sent back unchanged keep the stored secret."""
        row = self._repo.get(tenant_id, gateway_id)
        if not row:
            raise GatewayError('Payment gateway not found', 404)

        fields = {}
        if 'is_enabled' in data:
            fields['is_enabled'] = bool(data['is_enabled'])
        if 'config' in data:
            current = self._decode(row)
            merged = dict(current)
            for key, value in (data['config'] or {}).items():
                if key in SECRET_FIELDS and value and value == mask_secret(current.get(key)):
                    continue
                merged[key] = value
            fields['config_data'] = encrypt_value(json.dumps(merged))
        self._repo.update(tenant_id, gateway_id, **fields)
        return self._public(self._repo.get(tenant_id, gateway_id))

    def delete_gateway(self, tenant_id, gateway_id):
        if not self._repo.delete(tenant_id, gateway_id):
            raise GatewayError('Payment gateway not found', 404)

    # ============== Connection tests ==============

    def test_connection(self, tenant_id, gateway_type):
        row = self._repo.get_by_type(tenant_id, gateway_type)
        if not row:
            raise GatewayError(f'{gateway_type} gateway is not configured', 404)
        if not row.get('is_enabled'):
            raise GatewayError(f'{gateway_type} gateway is disabled')

        config = self._decode(row)
        missing = [f for f in REQUIRED_FIELDS.get(gateway_type, ()) if not config.get(f)]
        if missing:
            raise GatewayError(f"{gateway_type} config is missing {', '.join(missing)}")

        if gateway_type == 'stripe':
            return self._test_stripe(config)
        if gateway_type == 'paypal':
            return self._test_paypal(config)
        raise GatewayError(f'Unsupported gateway type: {gateway_type}')

    def _test_stripe(self, config):
        try:
            response = requests.get(
                STRIPE_BALANCE_URL,
                headers={'Authorization': f"Bearer {config['secret_key']}"},
                timeout=GATEWAY_TIMEOUT)
        except requests.RequestException as e:
            raise GatewayError(f'Could not reach Stripe: {e}', 502)

        if response.status_code != 200:
            try:
                message = response.json().get('error', {}).get('message')
            except ValueError:
                message = None
            raise GatewayError(f"Stripe rejected the credentials: {message or response.status_code}")

        balance = response.json()
        available = [
            {'amount': b.get('amount', 0) / 100, 'currency': (b.get('currency') or '').upper()}
            for b in balance.get('available', [])
        ]
        return {'gateway': 'stripe', 'connected': True, 'livemode': balance.get('livemode'),
                'available': available}

    def _test_paypal(self, config):
        mode = 'live' if config.get('mode') == 'live' else 'sandbox'
        try:
            response = requests.post(
                PAYPAL_TOKEN_URLS[mode],
                auth=(config['client_id'], config['client_secret']),
                data={'grant_type': 'client_credentials'},
                headers={'Accept': 'application/json'},
                timeout=GATEWAY_TIMEOUT)
        except requests.RequestException as e:
            raise GatewayError(f'Could not reach PayPal: {e}', 502)

        if response.status_code != 200:
            try:
                message = response.json().get('error_description')
            except ValueError:
                message = None
            raise GatewayError(f"PayPal rejected the credentials: {message or response.status_code}")
        return {'gateway': 'paypal', 'connected': True, 'mode': mode,
                'expires_in': response.json().get('expires_in')}
