# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Push notification channel for devices and browsers.

Subscriptions are read from the notification_records table. A stored
subscription is a JSON object of one of two shapes:

- a device registration ({"token": ..., "platform": "android|ios|web"}),
  sent through the Firebase Cloud Messaging HTTP v1 API;
- a W3C browser push subscription ({"endpoint": ..., "keys": {"p256dh": ...,
  "auth": ...}}), sent as an encrypted Web Push message signed with VAPID.
  This covers every browser push service (FCM, Mozilla, Apple).

Anything else is skipped with a warning.

Configuration (via environment variables):
- FIREBASE_CREDENTIALS_PATH: Path to service account JSON file
- FIREBASE_PROJECT_ID: Firebase project ID
- VAPID_PUBLIC_KEY / VAPID_PRIVATE_KEY / VAPID_SUBJECT: Web Push key pair and contact
"""

import asyncio
import json
import os
from functools import partial
from typing import Any

import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from pywebpush import WebPushException, webpush
from requests import RequestException

from coursenotify.core.config.settings import PushSettings
from coursenotify.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    ContactDirectory,
    NotificationPayload,
)

# FCM HTTP v1 API endpoint template
FCM_API_URL = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"

# Push services answer these for subscriptions that no longer exist
EXPIRED_SUBSCRIPTION_STATUSES = (404, 410)


def parse_subscription(raw: Any) -> dict[str, Any] | None:
    """Classify a stored subscription.

    Args:
        raw: Stored subscription, a JSON string or an already decoded object.

    Returns:
        {"kind": "fcm", "token": ..., "platform": ...} for a device
        registration, {"kind": "webpush", "endpoint": ..., "keys": {...}} for
        a browser subscription, or None if the subscription is unusable.
    """
    subscription = raw
    if isinstance(raw, (str, bytes)):
        try:
            subscription = json.loads(raw)
        except ValueError:
            return None

    if not isinstance(subscription, dict):
        return None

    token = subscription.get("token")
    if isinstance(token, str) and token:
        return {
            "kind": "fcm",
            "token": token,
            "platform": str(subscription.get("platform") or "android"),
        }

    endpoint = subscription.get("endpoint")
    keys = subscription.get("keys")
    if not (isinstance(endpoint, str) and endpoint.startswith("https://")):
        return None
    if not isinstance(keys, dict):
        return None
    p256dh, auth = keys.get("p256dh"), keys.get("auth")
    if not (isinstance(p256dh, str) and p256dh and isinstance(auth, str) and auth):
        return None

    return {"kind": "webpush", "endpoint": endpoint, "keys": {"p256dh": p256dh, "auth": auth}}


class PushChannel(BaseChannel):
    """Push notification channel over FCM and Web Push.

    Sends to every active subscription of the recipient. The send counts as
    delivered when at least one subscription accepted the message.

    Args:
        settings: Firebase and VAPID configuration.
        directory: Source of the recipient's subscriptions.
        http_client: Optional shared HTTP client for FCM; one is opened per send otherwise.
        credentials: Optional preloaded service account credentials.
    """

    def __init__(
        self,
        settings: PushSettings,
        directory: ContactDirectory,
        http_client: httpx.AsyncClient | None = None,
        credentials: Any = None,
    ) -> None:
        """Initialize the push channel."""
        super().__init__()
        self._settings = settings
        self._directory = directory
        self._http_client = http_client
        self._credentials = credentials
        self._project_id: str | None = settings.project_id
        self._initialized = credentials is not None and bool(settings.project_id)
        self._init_error: str | None = None

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.PUSH

    async def _ensure_initialized(self) -> bool:
        """Ensure Firebase credentials are loaded.

        Returns:
            True if initialization succeeded.
        """
        if self._initialized:
            return True

        if self._init_error:
            return False

        if not self._settings.fcm_configured:
            self._init_error = "Firebase credentials not configured"
            self.logger.warning(
                "FCM delivery disabled: FIREBASE_CREDENTIALS_PATH or "
                "FIREBASE_PROJECT_ID not set"
            )
            return False

        credentials_path = self._settings.credentials_path
        if not os.path.exists(credentials_path):
            self._init_error = f"Credentials file not found: {credentials_path}"
            self.logger.error(self._init_error)
            return False

        try:
            self._credentials = service_account.Credentials.from_service_account_file(
                credentials_path,
                scopes=[FCM_SCOPE],
            )
        except (ValueError, OSError) as e:
            self._init_error = f"Failed to initialize: {e}"
            self.logger.error(self._init_error, exc_info=True)
            return False

        self._initialized = True
        self.logger.info("FCM push channel initialized for project %s", self._project_id)
        return True

    async def _get_access_token(self) -> str | None:
        """Get OAuth2 access token for FCM API.

        Returns:
            Access token string or None if failed.
        """
        if not self._credentials:
            return None

        if self._credentials.valid:
            return self._credentials.token

        try:
            # Refresh runs in the default executor; google-auth is synchronous
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._credentials.refresh, Request())
            return self._credentials.token

        except Exception as e:
            self.logger.error("Failed to get FCM access token: %s", str(e))
            return None

    async def send(self, payload: NotificationPayload) -> ChannelResult:
        """Send push notification to every subscription of the recipient.

        Args:
            payload: The notification payload.

        Returns:
            ChannelResult with delivery status.
        """
        if not self._settings.is_configured:
            return self.create_skipped_result("Push channel not configured")

        stored = await self._directory.list_push_subscriptions(payload.recipient_id)

        targets: list[dict[str, Any]] = []
        for raw in stored:
            target = parse_subscription(raw)
            if target is None:
                self.logger.warning(
                    "Skipping invalid subscription for user %s", payload.recipient_id
                )
                continue
            targets.append(target)

        if not targets:
            return self.create_skipped_result("No push subscriptions available")

        results: list[dict[str, Any]] = []
        for target in targets:
            if target["kind"] == "webpush":
                results.append(await self._send_web_push(target, payload))
            else:
                results.append(await self._send_fcm(target, payload))

        attempted = [result for result in results if not result.get("skipped")]
        if not attempted:
            return self.create_skipped_result(
                results[0]["error"], metadata={"results": results}
            )

        delivered = [result for result in attempted if result.get("success")]
        success_count = len(delivered)
        failure_count = len(attempted) - success_count

        if success_count == 0:
            return self.create_failure_result(
                f"All {failure_count} push notifications failed",
                metadata={"results": results},
            )

        return self.create_success_result(
            message_id=delivered[0].get("message_id"),
            metadata={
                "success_count": success_count,
                "failure_count": failure_count,
                "results": results,
            },
        )

    async def _send_fcm(
        self, target: dict[str, Any], payload: NotificationPayload
    ) -> dict[str, Any]:
        if not await self._ensure_initialized():
            return {
                "success": False,
                "skipped": True,
                "platform": target["platform"],
                "error": self._init_error or "Firebase credentials not configured",
            }

        access_token = await self._get_access_token()
        if not access_token:
            return {
                "success": False,
                "platform": target["platform"],
                "error": "Failed to obtain access token",
            }

        return await self._send_to_token(
            token=target["token"],
            platform=target["platform"],
            payload=payload,
            access_token=access_token,
        )

    async def _send_web_push(
        self, target: dict[str, Any], payload: NotificationPayload
    ) -> dict[str, Any]:
        """Send an encrypted Web Push message to one browser subscription.

        pywebpush is synchronous, so the request runs in the default executor.

        Args:
            target: Parsed browser subscription.
            payload: Notification payload.

        Returns:
            Result dictionary with success status.
        """
        endpoint = target["endpoint"]
        short_endpoint = endpoint[:40] + "..."

        if not self._settings.web_push_configured:
            return {
                "success": False,
                "skipped": True,
                "endpoint": short_endpoint,
                "error": "VAPID keys not configured",
            }

        request = partial(
            webpush,
            subscription_info={"endpoint": endpoint, "keys": target["keys"]},
            data=json.dumps(self._build_web_push_body(payload)),
            vapid_private_key=self._settings.vapid_private_key.get_secret_value(),
            # pywebpush adds aud and exp to the claims it is given
            vapid_claims={"sub": self._settings.vapid_subject},
            ttl=self._settings.web_push_ttl,
            timeout=self._settings.request_timeout,
        )

        try:
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(None, request)
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in EXPIRED_SUBSCRIPTION_STATUSES:
                self.logger.warning(
                    "Web Push subscription expired for user %s (%d)",
                    payload.recipient_id,
                    status_code,
                )
            else:
                self.logger.warning("Web Push request failed: %s", str(e))
            return {
                "success": False,
                "endpoint": short_endpoint,
                "error": str(e),
                "status_code": status_code,
            }
        except RequestException as e:
            self.logger.error("Failed to send Web Push: %s", str(e))
            return {"success": False, "endpoint": short_endpoint, "error": str(e)}

        message_id = response.headers.get("Location")
        self.logger.debug("Web Push sent to %s: %s", short_endpoint, message_id)
        return {
            "success": True,
            "endpoint": short_endpoint,
            "message_id": message_id,
            "status_code": response.status_code,
        }

    @staticmethod
    def _build_web_push_body(payload: NotificationPayload) -> dict[str, Any]:
        """Build the JSON document the service worker receives."""
        body: dict[str, Any] = {
            "title": payload.title,
            "body": payload.message,
            "data": payload.data,
        }
        if payload.action_url:
            body["url"] = payload.action_url
        return body

    async def _post(
        self, url: str, headers: dict[str, str], body: dict[str, Any]
    ) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, headers=headers, json=body)

        async with httpx.AsyncClient(timeout=self._settings.request_timeout) as client:
            return await client.post(url, headers=headers, json=body)

    async def _send_to_token(
        self,
        token: str,
        platform: str,
        payload: NotificationPayload,
        access_token: str,
    ) -> dict[str, Any]:
        """Send notification to a single device token.

        Args:
            token: Device push token.
            platform: Platform (android, ios, web).
            payload: Notification payload.
            access_token: OAuth2 access token.

        Returns:
            Result dictionary with success status.
        """
        try:
            response = await self._post(
                FCM_API_URL.format(project_id=self._project_id),
                {
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
                {"message": self._build_fcm_message(token, platform, payload)},
            )
        except httpx.HTTPError as e:
            self.logger.error("Failed to send push to token: %s", str(e))
            return {
                "success": False,
                "token": token[:20] + "...",
                "platform": platform,
                "error": str(e),
            }

        if response.status_code == 200:
            message_id = response.json().get("name", "").split("/")[-1]
            self.logger.debug(
                "Push sent successfully to %s...: %s",
                token[:20],
                message_id,
            )
            return {
                "success": True,
                "token": token[:20] + "...",
                "platform": platform,
                "message_id": message_id,
            }

        self.logger.warning(
            "FCM request failed (%d): %s",
            response.status_code,
            response.text,
        )
        return {
            "success": False,
            "token": token[:20] + "...",
            "platform": platform,
            "error": response.text,
            "status_code": response.status_code,
        }

    def _build_fcm_message(
        self,
        token: str,
        platform: str,
        payload: NotificationPayload,
    ) -> dict[str, Any]:
        """Build FCM message structure.

        Args:
            token: Device token.
            platform: Platform type.
            payload: Notification payload.

        Returns:
            FCM message dictionary.
        """
        # FCM data values must be strings
        data = {
            key: value if isinstance(value, str) else json.dumps(value)
            for key, value in payload.data.items()
            if value is not None
        }

        message: dict[str, Any] = {
            "token": token,
            "notification": {
                "title": payload.title,
                "body": payload.message,
            },
            "data": data,
        }

        if platform == "android":
            message["android"] = {"priority": "high"}
        elif platform == "ios":
            message["apns"] = {
                "headers": {"apns-priority": "10"},
                "payload": {"aps": {"sound": "default"}},
            }
        elif platform == "web":
            message["webpush"] = {
                "headers": {"Urgency": "high"},
                "fcm_options": {"link": payload.action_url or "/"},
            }

        return message
