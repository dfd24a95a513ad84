"""
Matching attributes used by remote messaging rules.

Each attribute is a frozen dataclass keyed by its JSON name. Attributes
fall into a handful of generic kinds that know how to compare themselves
against an actual value:

- BoolMatchingAttribute: exact boolean
- StringMatchingAttribute: case-insensitive string equality
- StringListMatchingAttribute: actual value is one of the listed strings
- IntRangeMatchingAttribute: exact integer, or ``min <= actual <= max``
- VersionRangeMatchingAttribute: dotted numeric version, exact or ranged

Unset numeric fields hold ``-1`` (``sys.maxsize`` for ``max``) and unset
strings hold ``""``. A key nobody recognizes parses to
UnknownMatchingAttribute, which evaluates to its ``fallback``.

Example:
    >>> attribute = parse_attribute("appVersion", {"min": "10.2", "max": "10.10"})
    >>> attribute.evaluate("10.9.5")
    <EvaluationResult.MATCH: 'match'>
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from itertools import zip_longest
from typing import Any, ClassVar

from .models import EvaluationResult

_logger = logging.getLogger(__name__)

MATCHING_ATTRIBUTE_INT_DEFAULT_VALUE = -1
MATCHING_ATTRIBUTE_INT_DEFAULT_MAX_VALUE = sys.maxsize
MATCHING_ATTRIBUTE_STRING_DEFAULT_VALUE = ""

_VERSION_PATTERN = re.compile(r"^[0-9]+(\.[0-9]+)*$")


# =============================================================================
# Primitive comparisons
# =============================================================================


def parse_version(version: str) -> tuple[int, ...] | None:
    """Split a dotted numeric version, or return None if it is not one."""
    if not isinstance(version, str) or not _VERSION_PATTERN.match(version):
        return None
    return tuple(int(part) for part in version.split("."))


def compare_versions(left: tuple[int, ...], right: tuple[int, ...]) -> int:
    """Compare component-wise, padding the shorter version with zeros."""
    for a, b in zip_longest(left, right, fillvalue=0):
        if a != b:
            return -1 if a < b else 1
    return 0


def match_string(expected: str, actual: str | None) -> EvaluationResult:
    if actual is None:
        return EvaluationResult.FAIL
    return EvaluationResult.from_bool(expected.lower() == actual.lower())


def match_string_list(expected: tuple[str, ...], actual: str | None) -> EvaluationResult:
    if actual is None:
        return EvaluationResult.FAIL
    lowered = actual.lower()
    return EvaluationResult.from_bool(any(value.lower() == lowered for value in expected))


def match_int_range(
    value: int, min_value: int, max_value: int, actual: int | None
) -> EvaluationResult:
    if actual is None:
        return EvaluationResult.FAIL
    if value != MATCHING_ATTRIBUTE_INT_DEFAULT_VALUE:
        return EvaluationResult.from_bool(actual == value)
    return EvaluationResult.from_bool(min_value <= actual <= max_value)


def match_version_range(
    value: str, min_version: str, max_version: str, actual: str | None
) -> EvaluationResult:
    current = parse_version(actual) if actual is not None else None
    if current is None:
        return EvaluationResult.FAIL

    if value != MATCHING_ATTRIBUTE_STRING_DEFAULT_VALUE:
        exact = parse_version(value)
        matches = exact is not None and compare_versions(exact, current) == 0
        return EvaluationResult.from_bool(matches)

    if min_version:
        lower = parse_version(min_version)
        if lower is None or compare_versions(lower, current) > 0:
            return EvaluationResult.FAIL
    if max_version:
        upper = parse_version(max_version)
        if upper is None or compare_versions(upper, current) < 0:
            return EvaluationResult.FAIL
    return EvaluationResult.MATCH


# =============================================================================
# Generic kinds
# =============================================================================


def _coerce(raw: Any, kind: type) -> Any:
    """Return ``raw`` if it fits ``kind``, else None."""
    if kind is int:
        return raw if isinstance(raw, int) and not isinstance(raw, bool) else None
    if kind is tuple:
        if not isinstance(raw, list):
            return None
        return tuple(item for item in raw if isinstance(item, str))
    return raw if isinstance(raw, kind) else None


@dataclass(frozen=True)
class MatchingAttribute:
    """Base class for all matching attributes.

    Attributes:
        fallback: Result to use when the attribute cannot be evaluated
    """

    key: ClassVar[str] = ""
    _json_fields: ClassVar[dict[str, type]] = {}

    fallback: bool | None = None

    @classmethod
    def from_json(cls, data: Any) -> MatchingAttribute:
        """Build the attribute from its JSON object, ignoring ill-typed fields."""
        if not isinstance(data, dict):
            return cls()
        fallback = data.get("fallback")
        kwargs: dict[str, Any] = {"fallback": fallback if isinstance(fallback, bool) else None}
        for name, kind in cls._json_fields.items():
            value = _coerce(data.get(name), kind)
            if value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    def evaluate(self, actual: Any) -> EvaluationResult:
        raise NotImplementedError


@dataclass(frozen=True)
class BoolMatchingAttribute(MatchingAttribute):
    _json_fields: ClassVar[dict[str, type]] = {"value": bool}

    value: bool | None = None

    def evaluate(self, actual: bool | None) -> EvaluationResult:
        if self.value is None or actual is None:
            return EvaluationResult.FAIL
        return EvaluationResult.from_bool(self.value == actual)


@dataclass(frozen=True)
class StringMatchingAttribute(MatchingAttribute):
    _json_fields: ClassVar[dict[str, type]] = {"value": str}

    value: str = MATCHING_ATTRIBUTE_STRING_DEFAULT_VALUE

    def evaluate(self, actual: str | None) -> EvaluationResult:
        if not self.value:
            return EvaluationResult.FAIL
        return match_string(self.value, actual)


@dataclass(frozen=True)
class StringListMatchingAttribute(MatchingAttribute):
    _json_fields: ClassVar[dict[str, type]] = {"value": tuple}

    value: tuple[str, ...] = ()

    def evaluate(self, actual: str | None) -> EvaluationResult:
        return match_string_list(self.value, actual)


@dataclass(frozen=True)
class IntRangeMatchingAttribute(MatchingAttribute):
    _json_fields: ClassVar[dict[str, type]] = {"value": int, "min": int, "max": int}

    value: int = MATCHING_ATTRIBUTE_INT_DEFAULT_VALUE
    min: int = MATCHING_ATTRIBUTE_INT_DEFAULT_VALUE
    max: int = MATCHING_ATTRIBUTE_INT_DEFAULT_MAX_VALUE

    def evaluate(self, actual: int | None) -> EvaluationResult:
        return match_int_range(self.value, self.min, self.max, actual)


@dataclass(frozen=True)
class VersionRangeMatchingAttribute(MatchingAttribute):
    """An empty ``min`` or ``max`` leaves that side of the range open."""

    _json_fields: ClassVar[dict[str, type]] = {"value": str, "min": str, "max": str}

    value: str = MATCHING_ATTRIBUTE_STRING_DEFAULT_VALUE
    min: str = MATCHING_ATTRIBUTE_STRING_DEFAULT_VALUE
    max: str = MATCHING_ATTRIBUTE_STRING_DEFAULT_VALUE

    def evaluate(self, actual: str | None) -> EvaluationResult:
        return match_version_range(self.value, self.min, self.max, actual)


@dataclass(frozen=True)
class MessageIdsMatchingAttribute(MatchingAttribute):
    """Matches when any listed message id is among the actual ids."""

    _json_fields: ClassVar[dict[str, type]] = {"value": tuple}

    value: tuple[str, ...] = ()

    def evaluate(self, actual: frozenset[str] | None) -> EvaluationResult:
        if not self.value or actual is None:
            return EvaluationResult.FAIL
        return EvaluationResult.from_bool(any(message_id in actual for message_id in self.value))


# =============================================================================
# App attributes
# =============================================================================


@dataclass(frozen=True)
class IsInternalUserMatchingAttribute(BoolMatchingAttribute):
    key: ClassVar[str] = "isInternalUser"


@dataclass(frozen=True)
class AppIdMatchingAttribute(StringMatchingAttribute):
    key: ClassVar[str] = "appId"


@dataclass(frozen=True)
class AppVersionMatchingAttribute(VersionRangeMatchingAttribute):
    key: ClassVar[str] = "appVersion"


@dataclass(frozen=True)
class AtbMatchingAttribute(StringMatchingAttribute):
    key: ClassVar[str] = "atb"


@dataclass(frozen=True)
class AppAtbMatchingAttribute(StringMatchingAttribute):
    key: ClassVar[str] = "appAtb"


@dataclass(frozen=True)
class SearchAtbMatchingAttribute(StringMatchingAttribute):
    key: ClassVar[str] = "searchAtb"


@dataclass(frozen=True)
class ExpVariantMatchingAttribute(StringMatchingAttribute):
    key: ClassVar[str] = "expVariant"


@dataclass(frozen=True)
class InstalledMacAppStoreMatchingAttribute(BoolMatchingAttribute):
    key: ClassVar[str] = "installedMacAppStore"


# =============================================================================
# Device attributes
# =============================================================================


@dataclass(frozen=True)
class LocaleMatchingAttribute(StringListMatchingAttribute):
    key: ClassVar[str] = "locale"


@dataclass(frozen=True)
class OSMatchingAttribute(VersionRangeMatchingAttribute):
    key: ClassVar[str] = "osApi"


# =============================================================================
# User attributes
# =============================================================================


@dataclass(frozen=True)
class EmailEnabledMatchingAttribute(BoolMatchingAttribute):
    key: ClassVar[str] = "emailEnabled"


@dataclass(frozen=True)
class WidgetAddedMatchingAttribute(BoolMatchingAttribute):
    key: ClassVar[str] = "widgetAdded"


@dataclass(frozen=True)
class BookmarksMatchingAttribute(IntRangeMatchingAttribute):
    key: ClassVar[str] = "bookmarks"


@dataclass(frozen=True)
class FavoritesMatchingAttribute(IntRangeMatchingAttribute):
    key: ClassVar[str] = "favorites"


@dataclass(frozen=True)
class AppThemeMatchingAttribute(StringMatchingAttribute):
    key: ClassVar[str] = "appTheme"


@dataclass(frozen=True)
class DaysSinceInstalledMatchingAttribute(IntRangeMatchingAttribute):
    key: ClassVar[str] = "daysSinceInstalled"


@dataclass(frozen=True)
class DaysSinceNetPEnabledMatchingAttribute(IntRangeMatchingAttribute):
    key: ClassVar[str] = "daysSinceNetPEnabled"


@dataclass(frozen=True)
class IsPrivacyProEligibleUserMatchingAttribute(BoolMatchingAttribute):
    key: ClassVar[str] = "pproEligible"


@dataclass(frozen=True)
class IsPrivacyProSubscriberMatchingAttribute(BoolMatchingAttribute):
    key: ClassVar[str] = "pproSubscriber"


@dataclass(frozen=True)
class PrivacyProDaysSinceSubscribedMatchingAttribute(IntRangeMatchingAttribute):
    key: ClassVar[str] = "pproDaysSinceSubscribed"


@dataclass(frozen=True)
class PrivacyProDaysUntilExpiryMatchingAttribute(IntRangeMatchingAttribute):
    key: ClassVar[str] = "pproDaysUntilExpiryOrRenewal"


@dataclass(frozen=True)
class PrivacyProPurchasePlatformMatchingAttribute(StringListMatchingAttribute):
    key: ClassVar[str] = "pproPurchasePlatform"


@dataclass(frozen=True)
class PrivacyProSubscriptionStatusMatchingAttribute(MatchingAttribute):
    """Matches when the user is in any of the listed subscription states.

    Recognized states are ``active``, ``expiring`` and ``expired``; a list
    holding only other values never matches.
    """

    key: ClassVar[str] = "pproSubscriptionStatus"
    _json_fields: ClassVar[dict[str, type]] = {"value": tuple}

    SUPPORTED_STATUSES: ClassVar[frozenset[str]] = frozenset({"active", "expiring", "expired"})

    value: tuple[str, ...] = ()

    def evaluate(self, actual: frozenset[str] | None) -> EvaluationResult:
        if actual is None:
            return EvaluationResult.FAIL
        wanted = {status for status in self.value if status in self.SUPPORTED_STATUSES}
        return EvaluationResult.from_bool(bool(wanted & actual))


@dataclass(frozen=True)
class InteractedWithMessageMatchingAttribute(MessageIdsMatchingAttribute):
    key: ClassVar[str] = "interactedWithMessage"


@dataclass(frozen=True)
class InteractedWithDeprecatedMacRemoteMessageMatchingAttribute(MessageIdsMatchingAttribute):
    key: ClassVar[str] = "interactedWithDeprecatedMacRemoteMessage"


@dataclass(frozen=True)
class MessageShownMatchingAttribute(MessageIdsMatchingAttribute):
    key: ClassVar[str] = "messageShown"


@dataclass(frozen=True)
class PinnedTabsMatchingAttribute(IntRangeMatchingAttribute):
    key: ClassVar[str] = "pinnedTabs"


@dataclass(frozen=True)
class CustomHomePageMatchingAttribute(BoolMatchingAttribute):
    key: ClassVar[str] = "customHomePage"


@dataclass(frozen=True)
class DuckPlayerOnboardedMatchingAttribute(BoolMatchingAttribute):
    key: ClassVar[str] = "duckPlayerOnboarded"


@dataclass(frozen=True)
class DuckPlayerEnabledMatchingAttribute(BoolMatchingAttribute):
    key: ClassVar[str] = "duckPlayerEnabled"


@dataclass(frozen=True)
class FreemiumPIRCurrentUserMatchingAttribute(BoolMatchingAttribute):
    key: ClassVar[str] = "isCurrentFreemiumPIRUser"


# =============================================================================
# Unknown attributes and parsing
# =============================================================================


@dataclass(frozen=True)
class UnknownMatchingAttribute(MatchingAttribute):
    """An attribute this client does not understand.

    Evaluates to its ``fallback``; a missing fallback counts as a failure.
    """

    def evaluate(self, actual: Any = None) -> EvaluationResult:
        return EvaluationResult.from_bool(self.fallback)


ATTRIBUTE_TYPES: dict[str, type[MatchingAttribute]] = {
    attribute_type.key: attribute_type
    for attribute_type in (
        LocaleMatchingAttribute,
        OSMatchingAttribute,
        IsInternalUserMatchingAttribute,
        AppIdMatchingAttribute,
        AppVersionMatchingAttribute,
        AtbMatchingAttribute,
        AppAtbMatchingAttribute,
        SearchAtbMatchingAttribute,
        ExpVariantMatchingAttribute,
        EmailEnabledMatchingAttribute,
        WidgetAddedMatchingAttribute,
        BookmarksMatchingAttribute,
        FavoritesMatchingAttribute,
        AppThemeMatchingAttribute,
        DaysSinceInstalledMatchingAttribute,
        DaysSinceNetPEnabledMatchingAttribute,
        IsPrivacyProEligibleUserMatchingAttribute,
        IsPrivacyProSubscriberMatchingAttribute,
        PrivacyProDaysSinceSubscribedMatchingAttribute,
        PrivacyProDaysUntilExpiryMatchingAttribute,
        PrivacyProPurchasePlatformMatchingAttribute,
        PrivacyProSubscriptionStatusMatchingAttribute,
        InteractedWithMessageMatchingAttribute,
        InteractedWithDeprecatedMacRemoteMessageMatchingAttribute,
        InstalledMacAppStoreMatchingAttribute,
        PinnedTabsMatchingAttribute,
        CustomHomePageMatchingAttribute,
        DuckPlayerOnboardedMatchingAttribute,
        DuckPlayerEnabledMatchingAttribute,
        MessageShownMatchingAttribute,
        FreemiumPIRCurrentUserMatchingAttribute,
    )
}


def parse_attribute(key: str, data: Any) -> MatchingAttribute:
    """Map one ``"key": {...}`` entry of a rule to its attribute."""
    attribute_type = ATTRIBUTE_TYPES.get(key)
    if attribute_type is None:
        _logger.debug("Unknown matching attribute %r, using its fallback", key)
        return UnknownMatchingAttribute.from_json(data)
    return attribute_type.from_json(data)
