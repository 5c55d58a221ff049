"""Dispatcher: find the driver responsible for a webhook and send replies."""
import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional, Mapping, Sequence, Union
from models.events import DriverEvent
from models.messages import IncomingMessage
from platforms.base import PlatformDriver, RequestContext, Reply
from platforms.exceptions import NotConfigured
from platforms.facebook import (
    FacebookDriver, FacebookImageDriver, FacebookVideoDriver, FacebookAudioDriver, FacebookFileDriver
)
from platforms.http import HttpClient, HttpResponse
from platforms.telegram import (
    TelegramDriver, TelegramPhotoDriver, TelegramVideoDriver, TelegramAudioDriver, TelegramFileDriver
)

logger = logging.getLogger(__name__)


class DriverState(Enum):
    """Where a webhook exchange stands."""
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    MATCHED = "matched"
    EVENT_ONLY = "event_only"
    CLAIMED = "claimed"


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of probing the drivers for one request."""
    state: DriverState
    driver: Optional[PlatformDriver] = None
    context: Optional[RequestContext] = None
    messages: List[IncomingMessage] = field(default_factory=list)
    event: Optional[DriverEvent] = None
    payload: Optional[Dict[str, Any]] = None
    response: Optional[HttpResponse] = None

    @property
    def driver_name(self) -> Optional[str]:
        return self.driver.NAME if self.driver else None

    @property
    def matched(self) -> bool:
        return self.state in (DriverState.MATCHED, DriverState.EVENT_ONLY, DriverState.CLAIMED)


def default_drivers(http: Optional[HttpClient] = None) -> List[PlatformDriver]:
    """Every bundled driver, text drivers before their media variants."""
    return [
        FacebookDriver(http=http),
        FacebookImageDriver(http=http),
        FacebookVideoDriver(http=http),
        FacebookAudioDriver(http=http),
        FacebookFileDriver(http=http),
        TelegramDriver(http=http),
        TelegramPhotoDriver(http=http),
        TelegramVideoDriver(http=http),
        TelegramAudioDriver(http=http),
        TelegramFileDriver(http=http),
    ]


class DriverManager:
    """
    Probes drivers in order until one claims the request.

    Holds no per-request state; every call works on its own RequestContext.
    """

    def __init__(self, drivers: Optional[Sequence[PlatformDriver]] = None):
        self.drivers = list(drivers) if drivers is not None else default_drivers()

    def configured_drivers(self) -> List[PlatformDriver]:
        return [driver for driver in self.drivers if driver.is_configured()]

    def get_driver(self, name: str) -> Optional[PlatformDriver]:
        for driver in self.drivers:
            if driver.NAME.lower() == name.lower():
                return driver
        return None

    def dispatch(
        self,
        body: Union[bytes, str],
        headers: Optional[Mapping[str, str]] = None,
        drivers: Optional[Sequence[PlatformDriver]] = None
    ) -> DispatchResult:
        """
        Find the driver for a raw webhook request.

        The first driver whose ``matches_request`` holds wins. If none
        matches, the first driver reporting an event is used without
        messages.

        Raises:
            MalformedPayload: if the body is not valid JSON
        """
        candidates = [
            driver for driver in (drivers if drivers is not None else self.drivers)
            if driver.is_configured()
        ]
        if not candidates:
            logger.warning("No configured driver to handle the request")
            return DispatchResult(state=DriverState.UNCONFIGURED)

        event_only = None
        for driver in candidates:
            context = driver.build_request(body, headers)
            event = driver.has_matching_event(context)

            if driver.matches_request(context):
                logger.debug(f"[{driver.NAME}] Request matched")
                return DispatchResult(
                    state=DriverState.MATCHED,
                    driver=driver,
                    context=context,
                    messages=driver.get_messages(context),
                    event=event
                )

            if event is not None and event_only is None:
                event_only = DispatchResult(
                    state=DriverState.EVENT_ONLY,
                    driver=driver,
                    context=context,
                    event=event
                )

        if event_only is not None:
            logger.debug(f"[{event_only.driver_name}] Event only: {event_only.event.name}")
            return event_only

        return DispatchResult(state=DriverState.CONFIGURED)

    def reply(
        self,
        result: DispatchResult,
        message: Reply,
        additional_parameters: Optional[Dict[str, Any]] = None,
        matching_message: Optional[IncomingMessage] = None
    ) -> DispatchResult:
        """
        Build and send a reply for a dispatched request.

        Returns:
            The result in CLAIMED state with the payload and response

        Raises:
            NotConfigured: if no driver claimed the request
        """
        if not result.matched or result.driver is None:
            raise NotConfigured("No driver claimed this request")

        if matching_message is None:
            matching_message = result.messages[0] if result.messages else IncomingMessage.empty()

        payload = result.driver.build_service_payload(
            message,
            matching_message,
            additional_parameters,
            event=result.event
        )
        response = result.driver.send_payload(payload)

        return dataclasses.replace(
            result,
            state=DriverState.CLAIMED,
            payload=payload,
            response=response
        )
