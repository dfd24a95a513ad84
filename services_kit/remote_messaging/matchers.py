"""
Attribute matchers for the app, device and user attribute groups.

Each matcher holds the actual values for its group and answers
``evaluate(attribute)`` with an EvaluationResult, or None when the
attribute does not belong to the group. The config matcher tries the
groups in order and takes the first answer.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import ClassVar

from .attributes import (
    AppAtbMatchingAttribute,
    AppIdMatchingAttribute,
    AppThemeMatchingAttribute,
    AppVersionMatchingAttribute,
    AtbMatchingAttribute,
    BookmarksMatchingAttribute,
    CustomHomePageMatchingAttribute,
    DaysSinceInstalledMatchingAttribute,
    DaysSinceNetPEnabledMatchingAttribute,
    DuckPlayerEnabledMatchingAttribute,
    DuckPlayerOnboardedMatchingAttribute,
    EmailEnabledMatchingAttribute,
    ExpVariantMatchingAttribute,
    FavoritesMatchingAttribute,
    FreemiumPIRCurrentUserMatchingAttribute,
    InstalledMacAppStoreMatchingAttribute,
    InteractedWithDeprecatedMacRemoteMessageMatchingAttribute,
    InteractedWithMessageMatchingAttribute,
    IsInternalUserMatchingAttribute,
    IsPrivacyProEligibleUserMatchingAttribute,
    IsPrivacyProSubscriberMatchingAttribute,
    LocaleMatchingAttribute,
    MatchingAttribute,
    MessageShownMatchingAttribute,
    OSMatchingAttribute,
    PinnedTabsMatchingAttribute,
    PrivacyProDaysSinceSubscribedMatchingAttribute,
    PrivacyProDaysUntilExpiryMatchingAttribute,
    PrivacyProPurchasePlatformMatchingAttribute,
    PrivacyProSubscriptionStatusMatchingAttribute,
    SearchAtbMatchingAttribute,
    WidgetAddedMatchingAttribute,
)
from .models import EvaluationResult


def normalize_locale(locale: str) -> str:
    """``en_US@currency=USD`` -> ``en-US``."""
    return locale.split("@", 1)[0].replace("_", "-")


class _AttributeMatcher:
    """Dispatches an attribute to the actual value it is compared with."""

    _values: ClassVar[dict[type[MatchingAttribute], str]] = {}

    def evaluate(self, attribute: MatchingAttribute) -> EvaluationResult | None:
        name = self._values.get(type(attribute))
        if name is None:
            return None
        return attribute.evaluate(getattr(self, name))


@dataclass(frozen=True)
class AppAttributeMatcher(_AttributeMatcher):
    """Build and install facts about the running app."""

    _values: ClassVar[dict[type[MatchingAttribute], str]] = {
        IsInternalUserMatchingAttribute: "is_internal_user",
        AppIdMatchingAttribute: "bundle_id",
        AppVersionMatchingAttribute: "app_version",
        AtbMatchingAttribute: "atb",
        AppAtbMatchingAttribute: "app_atb",
        SearchAtbMatchingAttribute: "search_atb",
        ExpVariantMatchingAttribute: "variant",
        InstalledMacAppStoreMatchingAttribute: "is_installed_from_app_store",
    }

    bundle_id: str
    app_version: str
    is_internal_user: bool = False
    atb: str | None = None
    app_atb: str | None = None
    search_atb: str | None = None
    variant: str | None = None
    is_installed_from_app_store: bool | None = None

    def evaluate(self, attribute: MatchingAttribute) -> EvaluationResult | None:
        # Only platforms that know their install source answer this one
        if (
            isinstance(attribute, InstalledMacAppStoreMatchingAttribute)
            and self.is_installed_from_app_store is None
        ):
            return None
        return super().evaluate(attribute)


@dataclass(frozen=True)
class DeviceAttributeMatcher(_AttributeMatcher):
    """Operating system version and locale of the device."""

    _values: ClassVar[dict[type[MatchingAttribute], str]] = {
        LocaleMatchingAttribute: "normalized_locale",
        OSMatchingAttribute: "os_version",
    }

    os_version: str
    locale: str

    @property
    def normalized_locale(self) -> str:
        return normalize_locale(self.locale)

    def evaluate(self, attribute: MatchingAttribute) -> EvaluationResult | None:
        if isinstance(attribute, LocaleMatchingAttribute):
            wanted = tuple(normalize_locale(value) for value in attribute.value)
            return LocaleMatchingAttribute(value=wanted).evaluate(self.normalized_locale)
        return super().evaluate(attribute)


@dataclass(frozen=True)
class UserAttributeMatcher(_AttributeMatcher):
    """Usage, subscription and messaging history of the current user.

    Attributes:
        install_date: Day the app was installed; days since install is
            counted from it up to ``today``
        dismissed_message_ids: Messages the user closed or acted on
        shown_message_ids: Messages displayed at least once
        dismissed_deprecated_mac_message_ids: Ids from the retired macOS
            messaging system
    """

    _values: ClassVar[dict[type[MatchingAttribute], str]] = {
        EmailEnabledMatchingAttribute: "email_enabled",
        WidgetAddedMatchingAttribute: "is_widget_installed",
        BookmarksMatchingAttribute: "bookmarks_count",
        FavoritesMatchingAttribute: "favorites_count",
        AppThemeMatchingAttribute: "app_theme",
        DaysSinceInstalledMatchingAttribute: "days_since_installed",
        DaysSinceNetPEnabledMatchingAttribute: "days_since_net_p_enabled",
        IsPrivacyProEligibleUserMatchingAttribute: "is_privacy_pro_eligible_user",
        IsPrivacyProSubscriberMatchingAttribute: "is_privacy_pro_subscriber",
        PrivacyProDaysSinceSubscribedMatchingAttribute: "privacy_pro_days_since_subscribed",
        PrivacyProDaysUntilExpiryMatchingAttribute: "privacy_pro_days_until_expiry",
        PrivacyProPurchasePlatformMatchingAttribute: "privacy_pro_purchase_platform",
        PrivacyProSubscriptionStatusMatchingAttribute: "privacy_pro_subscription_statuses",
        InteractedWithMessageMatchingAttribute: "dismissed_message_ids",
        InteractedWithDeprecatedMacRemoteMessageMatchingAttribute: (
            "dismissed_deprecated_mac_message_ids"
        ),
        MessageShownMatchingAttribute: "shown_message_ids",
        PinnedTabsMatchingAttribute: "pinned_tabs_count",
        CustomHomePageMatchingAttribute: "has_custom_home_page",
        DuckPlayerOnboardedMatchingAttribute: "is_duck_player_onboarded",
        DuckPlayerEnabledMatchingAttribute: "is_duck_player_enabled",
        FreemiumPIRCurrentUserMatchingAttribute: "is_current_freemium_pir_user",
    }

    app_theme: str | None = None
    bookmarks_count: int = 0
    favorites_count: int = 0
    email_enabled: bool = False
    is_widget_installed: bool = False
    install_date: datetime.date | None = None
    today: datetime.date = field(default_factory=datetime.date.today)
    days_since_net_p_enabled: int = -1
    is_privacy_pro_eligible_user: bool = False
    is_privacy_pro_subscriber: bool = False
    privacy_pro_days_since_subscribed: int = -1
    privacy_pro_days_until_expiry: int = -1
    privacy_pro_purchase_platform: str | None = None
    is_privacy_pro_subscription_active: bool = False
    is_privacy_pro_subscription_expiring: bool = False
    is_privacy_pro_subscription_expired: bool = False
    dismissed_message_ids: frozenset[str] = frozenset()
    shown_message_ids: frozenset[str] = frozenset()
    dismissed_deprecated_mac_message_ids: frozenset[str] = frozenset()
    pinned_tabs_count: int = 0
    has_custom_home_page: bool = False
    is_duck_player_onboarded: bool = False
    is_duck_player_enabled: bool = False
    is_current_freemium_pir_user: bool = False

    @property
    def days_since_installed(self) -> int | None:
        if self.install_date is None:
            return None
        return (self.today - self.install_date).days

    @property
    def privacy_pro_subscription_statuses(self) -> frozenset[str]:
        flags = {
            "active": self.is_privacy_pro_subscription_active,
            "expiring": self.is_privacy_pro_subscription_expiring,
            "expired": self.is_privacy_pro_subscription_expired,
        }
        return frozenset(status for status, enabled in flags.items() if enabled)


__all__ = [
    "AppAttributeMatcher",
    "DeviceAttributeMatcher",
    "UserAttributeMatcher",
    "normalize_locale",
]
