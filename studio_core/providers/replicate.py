"""
Replicate predictions client (submit, poll, cancel)
"""

import asyncio
import logging
from enum import Enum
from typing import Dict, Any, Optional, Callable

import aiohttp

from ..config import PROVIDER_CONFIG
from ..exceptions import ProviderError, ProviderErrorKind, classify_error_text
from .base import ProviderClient

logger = logging.getLogger(__name__)


class PredictionStatus(str, Enum):
    """Replicate prediction status"""
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_STATUSES = {
    PredictionStatus.SUCCEEDED,
    PredictionStatus.FAILED,
    PredictionStatus.CANCELED,
}


class ReplicateClient(ProviderClient):
    """
    Runs models on Replicate

    ``run`` has no deadline of its own; wrap it with ``run_with_deadline``.
    When the awaiting task is cancelled the remote prediction is cancelled
    too, so an expired request does not keep billing.
    """

    provider_name = "Replicate"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        poll_interval: Optional[float] = None,
    ):
        config = PROVIDER_CONFIG["replicate"]
        super().__init__(api_key, base_url or config["base_url"])
        self.poll_interval = poll_interval if poll_interval is not None else config["poll_interval"]

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

    async def run(
        self,
        model: str,
        inputs: Dict[str, Any],
        callback: Optional[Callable[[str], None]] = None,
    ) -> Any:
        """
        Run a model and return its output

        Args:
            model: ``owner/name`` or ``owner/name:version``
            inputs: Model input parameters
            callback: Called with each intermediate status

        Returns:
            The prediction's ``output`` field, untouched
        """
        prediction = await self.create_prediction(model, inputs)
        prediction_id = prediction["id"]
        logger.info(f"Submitted Replicate prediction {prediction_id} for {model}")

        try:
            return await self._poll_prediction(prediction, callback)
        except asyncio.CancelledError:
            logger.warning(f"Prediction {prediction_id} abandoned, cancelling remotely")
            await asyncio.shield(self.cancel_prediction(prediction_id))
            raise

    async def create_prediction(self, model: str, inputs: Dict[str, Any]) -> Dict[str, Any]:
        session = self._require_session()
        if ":" in model:
            endpoint = f"{self.base_url}/predictions"
            payload = {"version": model.split(":", 1)[1], "input": inputs}
        else:
            endpoint = f"{self.base_url}/models/{model}/predictions"
            payload = {"input": inputs}

        try:
            async with session.post(endpoint, json=payload) as response:
                await self._raise_for_status(response)
                return await response.json()
        except aiohttp.ClientError as e:
            raise self._wrap_transport_error(e) from e

    async def get_prediction(self, prediction_id: str) -> Dict[str, Any]:
        session = self._require_session()
        try:
            async with session.get(f"{self.base_url}/predictions/{prediction_id}") as response:
                await self._raise_for_status(response)
                return await response.json()
        except aiohttp.ClientError as e:
            raise self._wrap_transport_error(e) from e

    async def _poll_prediction(
        self,
        prediction: Dict[str, Any],
        callback: Optional[Callable[[str], None]],
    ) -> Any:
        """Poll prediction status until it reaches a terminal state"""
        while True:
            status = PredictionStatus(prediction.get("status", PredictionStatus.STARTING.value))
            if callback:
                callback(status.value)

            if status == PredictionStatus.SUCCEEDED:
                return prediction.get("output")
            elif status == PredictionStatus.FAILED:
                error_text = str(prediction.get("error") or "Prediction failed")
                raise ProviderError(
                    classify_error_text(error_text),
                    error_text,
                    provider=self.provider_name,
                )
            elif status == PredictionStatus.CANCELED:
                raise ProviderError(
                    ProviderErrorKind.UNKNOWN,
                    "Prediction was canceled",
                    provider=self.provider_name,
                )

            await asyncio.sleep(self.poll_interval)
            prediction = await self.get_prediction(prediction["id"])

    async def cancel_prediction(self, prediction_id: str) -> bool:
        """Cancel a running prediction; returns whether Replicate accepted it"""
        if not self.session:
            return False

        endpoint = f"{self.base_url}/predictions/{prediction_id}/cancel"
        try:
            async with self.session.post(endpoint) as response:
                accepted = response.status < 400
        except aiohttp.ClientError as e:
            logger.warning(f"Failed to cancel prediction {prediction_id}: {e}")
            return False

        logger.info(f"Cancel request for prediction {prediction_id}: {'accepted' if accepted else 'rejected'}")
        return accepted


class MockReplicateClient(ReplicateClient):
    """Mock implementation for local testing without Replicate"""

    def __init__(
        self,
        output: Any = None,
        error: Optional[ProviderError] = None,
        delay: float = 0.0,
    ):
        super().__init__(api_key="mock")
        self.output = output if output is not None else ["https://replicate.delivery/mock/output.png"]
        self.error = error
        self.mock_delay = delay
        self.calls = []
        self.cancelled = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def run(
        self,
        model: str,
        inputs: Dict[str, Any],
        callback: Optional[Callable[[str], None]] = None,
    ) -> Any:
        """Mock prediction"""
        logger.info(f"Mock prediction for {model}")
        self.calls.append((model, inputs))
        try:
            await asyncio.sleep(self.mock_delay)
        except asyncio.CancelledError:
            self.cancelled.append(model)
            raise

        if self.error:
            raise self.error
        return self.output
