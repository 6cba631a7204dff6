"""Known-service lookup.

A :class:`KnowledgeBase` wraps an immutable, ordered tuple of
:class:`ServiceKnowledge` records. Lookup normalizes both the query and each
keyword (lowercase, alphanumerics only) and returns the first record, in
declaration order, whose keyword is a substring of the query. Order is the
only tie-breaker: a longer keyword declared later never beats an earlier one.

The built-in table below can be replaced wholesale by pointing the
``KNOWLEDGE_BASE_FILE`` environment variable at a JSON list of records
(camelCase keys, same shape as the API's ``/services`` output).
"""

from __future__ import annotations

import json
import logging
import os
import re
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from .models import ServiceKnowledge

logger = logging.getLogger(__name__)

_NON_ALNUM_RX = re.compile(r"[^a-z0-9]")


def _norm(text: str) -> str:
    return _NON_ALNUM_RX.sub("", text.lower())


DEFAULT_SERVICES: List[dict] = [
    # --- global entertainment ---
    {
        "id": "netflix",
        "name": "Netflix",
        "category": "Entertainment",
        "logo": "/logos/netflix.svg",
        "description": "Streaming service for movies and TV shows.",
        "url": "https://www.netflix.com",
        "cancellationUrl": "https://www.netflix.com/cancelplan",
        "cancellationMethod": "Online",
        "steps": [
            "Sign in and open Account from the profile menu.",
            "Under Membership & Billing choose Cancel Membership.",
            "Confirm on the next page.",
        ],
        "keywords": ["netflix", "nflx"],
        "downgradeOptions": [
            {"name": "Standard with Ads", "price": "$6.99/mo", "savings": "Save ~50%"},
        ],
    },
    {
        "id": "spotify",
        "name": "Spotify",
        "category": "Entertainment",
        "logo": "/logos/spotify.svg",
        "description": "Music and podcast streaming.",
        "url": "https://www.spotify.com",
        "cancellationUrl": "https://www.spotify.com/account/change-plan/",
        "cancellationMethod": "Online",
        "steps": [
            "Open your account page and go to Your plan.",
            "Click Change plan, then Cancel Premium.",
        ],
        "keywords": ["spotify", "spotify ab"],
        "downgradeOptions": [
            {"name": "Student Plan", "price": "$5.99/mo", "savings": "Save 50%"},
        ],
    },
    {
        "id": "youtube_premium",
        "name": "YouTube Premium",
        "category": "Entertainment",
        "logo": "/logos/youtube.svg",
        "description": "Ad-free YouTube and YouTube Music.",
        "url": "https://www.youtube.com",
        "cancellationUrl": "https://www.youtube.com/paid_memberships",
        "cancellationMethod": "Online",
        "steps": [
            "Open youtube.com/paid_memberships.",
            "Choose Manage Membership, then Deactivate.",
        ],
        "keywords": ["youtube", "google *youtube", "youtube premium"],
    },
    {
        "id": "disney_plus",
        "name": "Disney+",
        "category": "Entertainment",
        "logo": "/logos/disney.svg",
        "description": "Disney, Pixar, Marvel and Star Wars streaming.",
        "url": "https://www.disneyplus.com",
        "cancellationUrl": "https://www.disneyplus.com/account/subscription",
        "cancellationMethod": "Online",
        "steps": [
            "Sign in from a web browser and open Account.",
            "Select your subscription and choose Cancel Subscription.",
        ],
        "keywords": ["disney+", "disney plus"],
    },
    {
        "id": "prime_video",
        "name": "Prime Video",
        "category": "Entertainment",
        "logo": "/logos/primevideo.svg",
        "description": "Amazon's video on-demand service.",
        "url": "https://www.amazon.com/primevideo",
        "cancellationUrl": "https://www.amazon.com/gp/video/settings",
        "cancellationMethod": "Online",
        "steps": [
            "Open Account & Settings.",
            "Under Your Membership choose End Membership.",
        ],
        "keywords": ["prime video", "amazon prime", "amazon video", "amzn digital"],
    },
    {
        "id": "hulu",
        "name": "Hulu",
        "category": "Entertainment",
        "logo": "/logos/hulu.svg",
        "description": "TV and movie streaming.",
        "url": "https://www.hulu.com",
        "cancellationUrl": "https://secure.hulu.com/account",
        "cancellationMethod": "Online",
        "steps": [
            "Open the Account page in a browser.",
            "Select Cancel under Your Subscription and confirm.",
        ],
        "keywords": ["hulu", "hulu.com"],
    },
    {
        "id": "hbo_max",
        "name": "Max (HBO)",
        "category": "Entertainment",
        "logo": "/logos/max.svg",
        "description": "HBO, DC and Warner Bros. streaming.",
        "url": "https://www.max.com",
        "cancellationUrl": "https://auth.max.com/subscription",
        "cancellationMethod": "Online",
        "steps": [
            "Sign in and open Subscription.",
            "Choose Cancel Subscription.",
        ],
        "keywords": ["hbo max", "hbo now", "max.com"],
    },
    # --- utilities & software ---
    {
        "id": "apple_services",
        "name": "Apple Services",
        "category": "Utilities",
        "logo": "/logos/apple.svg",
        "description": "iCloud, Apple Music, Apple TV+ and other Apple billing.",
        "url": "https://apple.com",
        "cancellationUrl": "https://support.apple.com/en-us/HT202039",
        "cancellationMethod": "Online",
        "steps": [
            "Open Settings, tap your name, then Subscriptions.",
            "Pick the subscription and tap Cancel Subscription.",
        ],
        "keywords": ["apple.com/bill", "itunes", "apple music", "icloud"],
    },
    {
        "id": "adobe_cc",
        "name": "Adobe Creative Cloud",
        "category": "Software",
        "logo": "/logos/adobe.svg",
        "description": "Photoshop, Illustrator, Premiere Pro and more.",
        "url": "https://www.adobe.com",
        "cancellationUrl": "https://account.adobe.com/plans",
        "cancellationMethod": "Online",
        "steps": [
            "Sign in to account.adobe.com/plans.",
            "Choose Manage plan, then Cancel your plan.",
            "Early cancellation of annual plans may carry a fee.",
        ],
        "keywords": ["adobe", "adobe systems", "photoshop", "creative cloud"],
        "downgradeOptions": [
            {"name": "Photography Plan", "price": "$9.99/mo", "savings": "Save 80% vs All Apps"},
        ],
    },
    {
        "id": "aws",
        "name": "Amazon Web Services",
        "category": "Software",
        "logo": "/logos/aws.svg",
        "description": "Cloud computing services.",
        "url": "https://aws.amazon.com",
        "cancellationUrl": "https://console.aws.amazon.com/billing/home#/account",
        "cancellationMethod": "Online",
        "steps": [
            "Terminate running resources in every region.",
            "Close the account from the billing console.",
        ],
        "keywords": ["aws", "amazon web services"],
    },
    {
        "id": "google_one",
        "name": "Google One",
        "category": "Utilities",
        "logo": "/logos/google-one.svg",
        "description": "Extra storage for Drive, Gmail and Photos.",
        "url": "https://one.google.com",
        "cancellationUrl": "https://one.google.com/settings",
        "cancellationMethod": "Online",
        "steps": [
            "Open one.google.com/settings.",
            "Choose Cancel membership.",
        ],
        "keywords": ["google storage", "google one", "google drive"],
    },
    {
        "id": "chatgpt",
        "name": "ChatGPT Plus",
        "category": "Software",
        "logo": "/logos/openai.svg",
        "description": "AI assistant by OpenAI.",
        "url": "https://chat.openai.com",
        "cancellationUrl": "https://chat.openai.com/#settings/Subscription",
        "cancellationMethod": "Online",
        "steps": [
            "Open Settings, then Subscription.",
            "Choose Manage my subscription and cancel.",
        ],
        "keywords": ["chatgpt", "openai", "chatgpt plus"],
    },
    {
        "id": "canva",
        "name": "Canva",
        "category": "Software",
        "logo": "/logos/canva.svg",
        "description": "Graphic design platform.",
        "url": "https://www.canva.com",
        "cancellationUrl": "https://www.canva.com/settings/billing",
        "cancellationMethod": "Online",
        "steps": ["Open Settings, then Billing & plans, and cancel the subscription."],
        "keywords": ["canva"],
    },
    {
        "id": "dropbox",
        "name": "Dropbox",
        "category": "Software",
        "logo": "/logos/dropbox.svg",
        "description": "File hosting service.",
        "url": "https://www.dropbox.com",
        "cancellationUrl": "https://www.dropbox.com/account/billing",
        "cancellationMethod": "Online",
        "steps": ["Open Settings, then Billing, and choose Cancel plan."],
        "keywords": ["dropbox"],
    },
    {
        "id": "microsoft_365",
        "name": "Microsoft 365",
        "category": "Software",
        "logo": "/logos/microsoft.svg",
        "description": "Office apps and OneDrive storage.",
        "url": "https://www.microsoft.com",
        "cancellationUrl": "https://account.microsoft.com/services",
        "cancellationMethod": "Online",
        "steps": [
            "Open account.microsoft.com/services.",
            "Choose Manage, then Cancel subscription.",
        ],
        "keywords": ["microsoft 365", "msft *office", "microsoft"],
    },
    {
        "id": "github",
        "name": "GitHub",
        "category": "Software",
        "logo": "/logos/github.svg",
        "description": "Software development platform.",
        "url": "https://github.com",
        "cancellationUrl": "https://github.com/settings/billing",
        "cancellationMethod": "Online",
        "steps": ["Open Settings, then Billing and plans, and downgrade to Free."],
        "keywords": ["github"],
    },
    {
        "id": "zoom",
        "name": "Zoom",
        "category": "Software",
        "logo": "/logos/zoom.svg",
        "description": "Video conferencing.",
        "url": "https://zoom.us",
        "cancellationUrl": "https://zoom.us/billing/plan",
        "cancellationMethod": "Online",
        "steps": ["Open Account Management, then Billing, and Cancel Plan."],
        "keywords": ["zoom.us", "zoom video"],
    },
    # --- Indonesian services ---
    {
        "id": "telkomsel",
        "name": "Telkomsel Halo",
        "category": "Utilities",
        "logo": "/logos/telkomsel.svg",
        "description": "Postpaid mobile service.",
        "url": "https://www.telkomsel.com",
        "cancellationUrl": "https://www.telkomsel.com/support/contact-us",
        "cancellationMethod": "Phone",
        "steps": [
            "Call 188 or visit a GraPARI outlet.",
            "Bring your KTP and KK.",
        ],
        "keywords": ["telkomsel", "kartu halo", "halo"],
    },
    {
        "id": "indihome",
        "name": "IndiHome",
        "category": "Utilities",
        "logo": "/logos/indihome.svg",
        "description": "Home internet and TV provider.",
        "url": "https://indihome.co.id",
        "cancellationUrl": "https://myih.telkom.co.id/",
        "cancellationMethod": "Phone",
        "steps": [
            "Call 147 or visit a Plasa Telkom.",
            "Return the modem and settle outstanding bills.",
        ],
        "keywords": ["indihome", "telkom indonesia"],
    },
    {
        "id": "pln",
        "name": "PLN",
        "category": "Utilities",
        "logo": "/logos/pln.svg",
        "description": "State electricity company.",
        "url": "https://pln.co.id",
        "cancellationUrl": "https://layanan.pln.co.id/",
        "cancellationMethod": "Phone",
        "steps": ["Call 123 or use the PLN Mobile app to request termination."],
        "keywords": ["pln", "tagihan listrik"],
    },
    {
        "id": "vidio",
        "name": "Vidio",
        "category": "Entertainment",
        "logo": "/logos/vidio.svg",
        "description": "Indonesian streaming service.",
        "url": "https://www.vidio.com",
        "cancellationUrl": "https://www.vidio.com/packages/active",
        "cancellationMethod": "Online",
        "steps": ["Open Packages, pick the active package and stop auto-renewal."],
        "keywords": ["vidio", "vidio.com"],
    },
    {
        "id": "ruangguru",
        "name": "Ruangguru",
        "category": "Software",
        "logo": "/logos/ruangguru.svg",
        "description": "Online learning platform.",
        "url": "https://ruangguru.com",
        "cancellationUrl": "https://bayar.ruangguru.com/",
        "cancellationMethod": "Email",
        "steps": [
            "Email info@ruangguru.com or use in-app help.",
            "Prepaid packages simply stop renewing.",
        ],
        "keywords": ["ruangguru"],
    },
]


class KnowledgeBase:
    """Read-only, ordered collection of known services.

    Safe to share between concurrent analyses: nothing mutates after
    construction.
    """

    __slots__ = ("_services", "_index", "_by_id")

    def __init__(self, services: Iterable[ServiceKnowledge]):
        self._services: Tuple[ServiceKnowledge, ...] = tuple(services)
        # (record, normalized keywords) in declaration order
        self._index: Tuple[Tuple[ServiceKnowledge, Tuple[str, ...]], ...] = tuple(
            (svc, tuple(nk for nk in (_norm(k) for k in svc.keywords) if nk))
            for svc in self._services
        )
        self._by_id = {svc.id: svc for svc in self._services}

    @classmethod
    def from_records(cls, records: Sequence[dict]) -> "KnowledgeBase":
        return cls(ServiceKnowledge.model_validate(r) for r in records)

    @classmethod
    def from_json_file(cls, path: str) -> "KnowledgeBase":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a JSON list of service records")
        return cls.from_records(data)

    def __len__(self) -> int:
        return len(self._services)

    def __iter__(self):
        return iter(self._services)

    @property
    def services(self) -> Tuple[ServiceKnowledge, ...]:
        return self._services

    def get(self, service_id: str) -> Optional[ServiceKnowledge]:
        return self._by_id.get(service_id)

    def lookup(self, description: str) -> Optional[ServiceKnowledge]:
        """Return the first service whose keyword occurs in ``description``."""
        if not description:
            return None
        search = _norm(description)
        if not search:
            return None
        for svc, keywords in self._index:
            if any(nk in search for nk in keywords):
                return svc
        return None


def _load_default() -> KnowledgeBase:
    path = os.environ.get("KNOWLEDGE_BASE_FILE")
    if path and os.path.isfile(path):
        try:
            kb = KnowledgeBase.from_json_file(path)
            logger.info("Loaded %d services from %s", len(kb), path)
            return kb
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Ignoring knowledge base file %s: %s", path, e)
    return KnowledgeBase.from_records(DEFAULT_SERVICES)


@lru_cache(maxsize=1)
def default_knowledge_base() -> KnowledgeBase:
    """Process-wide knowledge base, loaded once."""
    return _load_default()


def lookup_service(
    description: str, knowledge_base: Optional[KnowledgeBase] = None
) -> Optional[ServiceKnowledge]:
    kb = knowledge_base if knowledge_base is not None else default_knowledge_base()
    return kb.lookup(description)


def get_all_services(knowledge_base: Optional[KnowledgeBase] = None) -> List[ServiceKnowledge]:
    kb = knowledge_base if knowledge_base is not None else default_knowledge_base()
    return list(kb.services)


__all__ = [
    "DEFAULT_SERVICES",
    "KnowledgeBase",
    "default_knowledge_base",
    "lookup_service",
    "get_all_services",
]
