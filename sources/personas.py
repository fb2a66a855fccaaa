"""Client personas known to the player API."""

from __future__ import annotations

import copy
import secrets
from typing import Any, Dict, List, Optional

from core import ClientPersona


PLAYER_API_URL = "https://youtubei.googleapis.com/youtubei/v1/player"

NONCE_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ-_"

LOCALE = {"hl": "en", "timeZone": "UTC", "utcOffsetMinutes": 0}
CHECK_FLAGS = {"contentCheckOk": True, "racyCheckOk": True}

IOS_CLIENT_VERSION = "19.45.4"
IOS_DEVICE_MODEL = "iPhone16,2"
IOS_USER_AGENT_VERSION = "17_5_1"
IOS_OS_VERSION = "17.5.1.21F90"

ANDROID_CLIENT_VERSION = "19.44.38"
ANDROID_OS_VERSION = "11"
ANDROID_SDK_VERSION = "30"

_MOBILE_EXTRAS = {
    "request": {"internalExperimentFlags": [], "useSsl": True},
    "user": {"lockedSafetyMode": False},
}


# The page itself is the WEB persona: its response comes from the watch page.
WEB = ClientPersona(name="WEB", version="", request_template={})

WEB_EMBEDDED = ClientPersona(
    name="WEB_EMBEDDED",
    version="1.20240723.01.00",
    request_template={
        "client": {"clientName": "WEB_EMBEDDED_PLAYER", "clientVersion": "1.20240723.01.00", **LOCALE},
    },
    needs_playback_context=True,
)

TV = ClientPersona(
    name="TV",
    version="7.20240724.13.00",
    request_template={
        "client": {"clientName": "TVHTML5", "clientVersion": "7.20240724.13.00", **LOCALE},
    },
    needs_playback_context=True,
    needs_visitor_id=True,
)

IOS = ClientPersona(
    name="IOS",
    version=IOS_CLIENT_VERSION,
    request_template={
        "client": {
            "clientName": "IOS",
            "clientVersion": IOS_CLIENT_VERSION,
            "deviceMake": "Apple",
            "deviceModel": IOS_DEVICE_MODEL,
            "platform": "MOBILE",
            "osName": "iOS",
            "osVersion": IOS_OS_VERSION,
            "hl": "en",
            "gl": "US",
            "utcOffsetMinutes": -240,
        },
        **_MOBILE_EXTRAS,
    },
    user_agent=(
        f"com.google.ios.youtube/{IOS_CLIENT_VERSION}({IOS_DEVICE_MODEL}; U; "
        f"CPU iOS {IOS_USER_AGENT_VERSION} like Mac OS X; en_US)"
    ),
    sends_cpn=True,
)

ANDROID = ClientPersona(
    name="ANDROID",
    version=ANDROID_CLIENT_VERSION,
    request_template={
        "client": {
            "clientName": "ANDROID",
            "clientVersion": ANDROID_CLIENT_VERSION,
            "platform": "MOBILE",
            "osName": "Android",
            "osVersion": ANDROID_OS_VERSION,
            "androidSdkVersion": ANDROID_SDK_VERSION,
            "hl": "en",
            "gl": "US",
            "utcOffsetMinutes": -240,
        },
        **_MOBILE_EXTRAS,
    },
    user_agent=f"com.google.android.youtube/{ANDROID_CLIENT_VERSION} (Linux; U; Android {ANDROID_OS_VERSION}) gzip",
    sends_cpn=True,
)

PERSONAS: Dict[str, ClientPersona] = {
    persona.name: persona for persona in (WEB, WEB_EMBEDDED, TV, IOS, ANDROID)
}

PRIMARY_PERSONA = WEB.name


def generate_nonce(length: int) -> str:
    """Client playback nonce."""
    return "".join(secrets.choice(NONCE_ALPHABET) for _ in range(length))


def alternate_personas(enabled: List[str]) -> List[ClientPersona]:
    """Enabled personas other than the primary one, in enable order."""
    return [PERSONAS[name] for name in enabled if name != PRIMARY_PERSONA]


def build_payload(
    persona: ClientPersona,
    video_id: str,
    *,
    playback_context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Player API body for ``persona``; the template is never mutated."""
    payload: Dict[str, Any] = {
        "context": copy.deepcopy(persona.request_template),
        "videoId": video_id,
        **CHECK_FLAGS,
    }
    if persona.sends_cpn:
        payload["cpn"] = generate_nonce(16)
    if playback_context is not None:
        payload["playbackContext"] = playback_context
    return payload


def build_headers(persona: ClientPersona, *, visitor_id: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "Content-Type": "application/json",
        "X-Goog-Api-Format-Version": "2",
    }
    if persona.user_agent:
        headers["User-Agent"] = persona.user_agent
    if visitor_id:
        headers["X-Goog-Visitor-Id"] = visitor_id
    return headers


def build_query(video_id: str) -> Dict[str, Any]:
    return {"prettyPrint": "false", "t": generate_nonce(12), "id": video_id}
