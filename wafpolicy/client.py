"""Azure Resource Manager client for Front Door firewall policies.

A thin requests-based client exposing the three calls the adapter needs
(Get, CreateOrUpdate, Delete). Writes return a LongRunningOperation whose
``wait()`` blocks until the service reports a terminal state, following the
ARM asynchronous operation conventions:

1. ``Azure-AsyncOperation`` header: poll it until ``status`` is terminal
2. ``Location`` header: poll it until it stops answering 202
3. Otherwise poll the resource itself until ``provisioningState`` is terminal

Polling honours ``Retry-After`` and the caller's CallContext. There is no
other retry logic.
"""

import json
import logging
from typing import Any, Dict, Optional

import requests
from requests.structures import CaseInsensitiveDict

from wafpolicy import schema
from wafpolicy.context import CallContext
from wafpolicy.exceptions import NotFound, RemoteCallError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://management.azure.com"
DEFAULT_POLL_INTERVAL = 10
DEFAULT_REQUEST_TIMEOUT = 60
USER_AGENT = "frontdoorwaf/0.1"

TERMINAL_STATES = {"succeeded", "failed", "canceled", "cancelled"}
SUCCESS_STATES = {"succeeded"}


class ArmResponse:
    """
    Response envelope returned by every client call.

    Args:
        status_code: HTTP status code
        body: Decoded JSON body (empty dict when there is none)
        headers: Response headers
    """

    def __init__(
        self,
        status_code: int,
        body: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.status_code = status_code
        self.body = body or {}
        self.headers = CaseInsensitiveDict(headers or {})

    @property
    def was_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def error_message(self) -> str:
        """Extract the ARM error code and message from the body."""
        error = self.body.get("error") if isinstance(self.body, dict) else None
        if isinstance(error, dict):
            return f"{error.get('code', 'Unknown')}: {error.get('message', '')}".strip()
        return f"HTTP {self.status_code}"

    @classmethod
    def from_requests(cls, resp: requests.Response) -> "ArmResponse":
        body: Dict[str, Any] = {}
        if resp.content:
            try:
                body = resp.json()
            except ValueError:
                body = {"error": {"code": "InvalidResponse", "message": resp.text[:200]}}
        return cls(resp.status_code, body, resp.headers)


def _raise_for_status(response: ArmResponse, operation: str) -> ArmResponse:
    if response.ok:
        return response
    error_cls = NotFound if response.was_not_found else RemoteCallError
    raise error_cls(
        f"{operation} failed: {response.error_message()}",
        context={"operation": operation, "status": response.status_code},
        status_code=response.status_code,
    )


class LongRunningOperation:
    """
    Handle for an asynchronous ARM write.

    Args:
        client: Client used for polling requests
        initial: Response to the initial PUT/DELETE
        resource_url: URL of the resource being written
        operation: Operation name for errors and logs
    """

    def __init__(
        self,
        client: "FrontDoorPolicyClient",
        initial: ArmResponse,
        resource_url: str,
        operation: str,
    ):
        self.client = client
        self.resource_url = resource_url
        self.operation = operation
        self._response = initial
        self._done = False
        self._async_url = initial.headers.get("Azure-AsyncOperation")
        self._location_url = initial.headers.get("Location")
        if initial.status_code == 204:
            self._done = True
        elif not self._async_url and not self._location_url:
            self._done = self._state_of(initial) in TERMINAL_STATES

    def response(self) -> ArmResponse:
        """The most recent response seen while polling."""
        return self._response

    def done(self) -> bool:
        return self._done

    @staticmethod
    def _state_of(response: ArmResponse) -> str:
        properties = response.body.get("properties") or {}
        # Resources without provisioningState are complete once written
        return str(properties.get("provisioningState", "Succeeded")).lower()

    def _interval(self, response: ArmResponse) -> float:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return max(0.0, float(retry_after))
            except ValueError:
                pass
        return self.client.poll_interval

    def _fail(self, response: ArmResponse, state: str) -> None:
        raise RemoteCallError(
            f"{self.operation} finished with status {state}: {response.error_message()}",
            context={"operation": self.operation, "status": response.status_code},
            status_code=response.status_code,
        )

    def _poll_async_operation(self, ctx: CallContext) -> None:
        while True:
            ctx.sleep(self._interval(self._response), self.operation)
            status = self.client._request("GET", self._async_url, ctx)
            _raise_for_status(status, self.operation)
            self._response = status
            state = str(status.body.get("status", "")).lower()
            logger.debug(f"{self.operation}: async operation status {state!r}")
            if state in TERMINAL_STATES:
                if state not in SUCCESS_STATES:
                    self._fail(status, state)
                return

    def _poll_location(self, ctx: CallContext) -> None:
        while True:
            ctx.sleep(self._interval(self._response), self.operation)
            status = self.client._request("GET", self._location_url, ctx)
            self._response = status
            logger.debug(f"{self.operation}: location status {status.status_code}")
            if status.status_code != 202:
                _raise_for_status(status, self.operation)
                return

    def _poll_resource(self, ctx: CallContext) -> None:
        while True:
            ctx.sleep(self._interval(self._response), self.operation)
            status = self.client._request("GET", self.resource_url, ctx)
            _raise_for_status(status, self.operation)
            self._response = status
            state = self._state_of(status)
            logger.debug(f"{self.operation}: provisioning state {state!r}")
            if state in TERMINAL_STATES:
                if state not in SUCCESS_STATES:
                    self._fail(status, state)
                return

    def wait(self, ctx: CallContext) -> ArmResponse:
        """Block until the operation reaches a terminal state.

        Args:
            ctx: Call context providing cancellation and deadline

        Returns:
            Final response of the operation

        Raises:
            NotFound: If the service answers 404 while polling
            RemoteCallError: If the operation fails, is cancelled or times out
        """
        if self._done:
            state = self._state_of(self._response)
            if state not in SUCCESS_STATES and self._response.status_code != 204:
                self._fail(self._response, state)
            return self._response

        if self._async_url:
            self._poll_async_operation(ctx)
        elif self._location_url:
            self._poll_location(ctx)
        else:
            self._poll_resource(ctx)
        self._done = True
        return self._response


class FrontDoorPolicyClient:
    """
    Management client for FrontDoorWebApplicationFirewallPolicies.

    Args:
        subscription_id: Azure subscription owning the policies
        token: Bearer token obtained by the caller
        endpoint: ARM endpoint URL
        api_version: API version sent with every request
        session: requests.Session to use (one is created if omitted)
        poll_interval: Default seconds between long-running operation polls
        request_timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        subscription_id: str,
        token: Optional[str] = None,
        endpoint: str = DEFAULT_ENDPOINT,
        api_version: str = schema.API_VERSION,
        session: Optional[requests.Session] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.subscription_id = subscription_id
        self.endpoint = endpoint.rstrip("/")
        self.api_version = api_version
        self.poll_interval = poll_interval
        self.request_timeout = request_timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def policy_url(self, resource_group: str, name: str) -> str:
        return (
            f"{self.endpoint}/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{resource_group}/providers/{schema.PROVIDER_NAMESPACE}"
            f"/{schema.RESOURCE_PATH_KEY}/{name}"
        )

    def _request(
        self,
        method: str,
        url: str,
        ctx: CallContext,
        body: Optional[Dict[str, Any]] = None,
    ) -> ArmResponse:
        ctx.check(f"{method} {url}")
        timeout = self.request_timeout
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)

        params = None if "api-version=" in url else {"api-version": self.api_version}
        if body is not None:
            logger.debug(f"{method} {url} body={json.dumps(body, sort_keys=True)}")
        else:
            logger.debug(f"{method} {url}")
        try:
            resp = self.session.request(
                method, url, params=params, json=body, timeout=timeout
            )
        except requests.RequestException as e:
            raise RemoteCallError(
                f"{method} request failed: {e}", context={"url": url}
            ) from e
        return ArmResponse.from_requests(resp)

    def get(self, resource_group: str, name: str, ctx: CallContext) -> ArmResponse:
        """Fetch a policy.

        Raises:
            NotFound: If the policy does not exist
            RemoteCallError: For any other failure
        """
        response = self._request("GET", self.policy_url(resource_group, name), ctx)
        return _raise_for_status(response, "Get")

    def begin_create_or_update(
        self,
        resource_group: str,
        name: str,
        body: Dict[str, Any],
        ctx: CallContext,
    ) -> LongRunningOperation:
        url = self.policy_url(resource_group, name)
        response = self._request("PUT", url, ctx, body=body)
        _raise_for_status(response, "CreateOrUpdate")
        return LongRunningOperation(self, response, url, "CreateOrUpdate")

    def begin_delete(
        self, resource_group: str, name: str, ctx: CallContext
    ) -> LongRunningOperation:
        """Start deleting a policy.

        Raises:
            NotFound: If the policy does not exist
            RemoteCallError: For any other failure
        """
        url = self.policy_url(resource_group, name)
        response = self._request("DELETE", url, ctx)
        _raise_for_status(response, "Delete")
        return LongRunningOperation(self, response, url, "Delete")
