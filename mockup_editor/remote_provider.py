"""Reference remote healing provider (token + rectangle inpainting over HTTP).

The image travels as a base64 PNG and the region as
``[{"left", "top", "width", "height"}]`` in native pixels, form-encoded.
"""
import base64
import json
import time

import requests

from .config import HealingProviderConfig
from .errors import DecodeFailed, HealingTimeout, ProviderRejected, ProviderUnavailable
from .log_utils import get_logger
from .mask_utils import Region
from .pixel_buffer import PixelBuffer, decode_bytes, encode_image

logger = get_logger(__name__)

# error codes meaning the access token is invalid or expired
TOKEN_ERROR_CODES = {110, 111}


class InpaintingProvider:
    """HealingProvider backed by a remote rectangle-inpainting endpoint."""

    def __init__(self, config: HealingProviderConfig, http=None):
        if not config.is_configured:
            raise ValueError('healing provider credentials are not configured')
        self.config = config
        self.http = http if http is not None else requests.Session()
        self._token = None
        self._token_expires = 0.0

    def _post(self, url, **kwargs):
        try:
            response = self.http.post(url, timeout=self.config.timeout, **kwargs)
        except requests.Timeout as exc:
            raise HealingTimeout(f'provider did not answer within {self.config.timeout:.0f}s') from exc
        except requests.RequestException as exc:
            raise ProviderUnavailable(f'request failed - {exc}') from exc

        if response.status_code >= 500:
            raise ProviderUnavailable(f'HTTP {response.status_code}')
        try:
            data = response.json()
        except ValueError:
            data = None
        if response.status_code != 200:
            detail = ''
            if isinstance(data, dict):
                detail = data.get('error_msg') or data.get('error_description') or ''
            raise ProviderRejected(response.status_code, detail or response.reason or 'request rejected')
        if not isinstance(data, dict):
            raise ProviderRejected('bad_response', 'provider reply is not a JSON object')
        return data

    def _access_token(self):
        if self._token and time.monotonic() < self._token_expires:
            return self._token
        data = self._post(self.config.token_url, params={
            'grant_type': 'client_credentials',
            'client_id': self.config.api_key,
            'client_secret': self.config.secret_key,
        })
        token = data.get('access_token')
        if not token:
            raise ProviderRejected(data.get('error', 'no_token'),
                                   data.get('error_description', 'no access token in reply'))
        try:
            lifetime = float(data.get('expires_in', 0))
        except (TypeError, ValueError) as exc:
            raise ProviderRejected('bad_response', f'unreadable expires_in: {data.get("expires_in")!r}') from exc
        # renew a minute early
        self._token = token
        self._token_expires = time.monotonic() + max(0.0, lifetime - 60.0)
        logger.info('Provider access token refreshed')
        return token

    def _inpaint(self, image_b64, region: Region):
        return self._post(
            self.config.inpaint_url,
            params={'access_token': self._access_token()},
            data={'image': image_b64, 'rectangle': json.dumps([region.as_dict()])},
            headers={'Accept': 'application/json'},
        )

    def heal(self, image: PixelBuffer, region: Region) -> PixelBuffer:
        image_b64 = base64.b64encode(encode_image(image, 'PNG')).decode('ascii')
        logger.info(f'Provider request: {image.width}x{image.height}, region {region.as_dict()}')
        data = self._inpaint(image_b64, region)
        if data.get('error_code') in TOKEN_ERROR_CODES:
            logger.info('Provider token rejected; retrying with a fresh token')
            self._token = None
            data = self._inpaint(image_b64, region)
        if data.get('error_code'):
            raise ProviderRejected(data['error_code'], data.get('error_msg', ''))
        if not isinstance(data.get('image'), str) or not data['image']:
            raise ProviderRejected('bad_response', 'no image in provider reply')
        try:
            healed = decode_bytes(base64.b64decode(data['image']))
        except (DecodeFailed, ValueError) as exc:
            raise ProviderRejected('bad_image', str(exc)) from exc
        if healed.shape != image.shape:
            raise ProviderRejected('size_mismatch',
                                   f'got {healed.width}x{healed.height}, sent {image.width}x{image.height}')
        logger.info('Provider request succeeded')
        return healed
