"""Session lifecycle: identity stream, state machine, readiness join."""

from stayin.session.identity_stream import IdentityEvent, IdentityStream
from stayin.session.readiness import HeadlessSplash, ReadinessAggregator, SplashScreen
from stayin.session.state_machine import SessionStateMachine

__all__ = [
    "HeadlessSplash",
    "IdentityEvent",
    "IdentityStream",
    "ReadinessAggregator",
    "SessionStateMachine",
    "SplashScreen",
]
