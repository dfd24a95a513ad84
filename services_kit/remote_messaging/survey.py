"""
Survey URL decoration.

A survey action lists the parameters it wants in
``additionalParameters.queryParams`` (``"atb;var;locale"``). The mapper
only accepts surveys whose parameters are all supported, and the URL
builder appends the values it knows to the survey URL.

Example:
    >>> builder = DefaultSurveyURLBuilder(atb="v456-7", variant="zo")
    >>> builder.add_parameters("https://duckduckgo.com", [SurveyActionParameter.ATB])
    'https://duckduckgo.com?atb=v456-7'
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


class SurveyActionParameter(str, Enum):
    ATB = "atb"
    VARIANT = "var"
    OS_VERSION = "osv"
    APP_VERSION = "ddgv"
    DAYS_INSTALLED = "da"
    LOCALE = "locale"
    PRIVACY_PRO_STATUS = "ppro_status"
    PRIVACY_PRO_PLATFORM = "ppro_platform"
    PRIVACY_PRO_BILLING = "ppro_billing"
    PRIVACY_PRO_DAYS_SINCE_PURCHASE = "ppro_days_since_purchase"
    PRIVACY_PRO_DAYS_UNTIL_EXPIRY = "ppro_days_until_exp"
    VPN_FIRST_USED = "vpn_first_used"
    VPN_LAST_USED = "vpn_last_used"

    @classmethod
    def parse(cls, value: str) -> SurveyActionParameter | None:
        try:
            return cls(value)
        except ValueError:
            return None


class SubscriptionStatus(str, Enum):
    AUTO_RENEWABLE = "auto_renewable"
    NOT_AUTO_RENEWABLE = "not_auto_renewable"
    GRACE_PERIOD = "grace_period"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


class SubscriptionPlatform(str, Enum):
    APPLE = "apple"
    GOOGLE = "google"
    STRIPE = "stripe"
    UNKNOWN = "unknown"


def parse_survey_parameters(raw: str) -> list[SurveyActionParameter] | None:
    """Split ``"a;b"`` into parameters, or None if any is unsupported."""
    parameters: list[SurveyActionParameter] = []
    for name in raw.split(";"):
        parameter = SurveyActionParameter.parse(name)
        if parameter is None:
            return None
        parameters.append(parameter)
    return parameters


class SurveyActionMapper(ABC):
    """Turns a survey URL plus requested parameters into the final URL."""

    @abstractmethod
    def add_parameters(self, url: str, parameters: Iterable[SurveyActionParameter]) -> str:
        pass


@dataclass(frozen=True)
class DefaultSurveyURLBuilder(SurveyActionMapper):
    """Appends known user facts to survey URLs.

    Parameters whose value is unknown (None) are left out. Query items
    already on the URL are kept in front of the appended ones.
    """

    atb: str | None = None
    variant: str | None = None
    os_version: str | None = None
    app_version: str | None = None
    days_installed: int | None = None
    locale: str | None = None
    subscription_status: SubscriptionStatus | None = None
    subscription_platform: SubscriptionPlatform | None = None
    subscription_billing: str | None = None
    days_since_purchase: int | None = None
    days_until_expiry: int | None = None
    vpn_first_used_days: int | None = None
    vpn_last_used_days: int | None = None

    def _value(self, parameter: SurveyActionParameter) -> str | None:
        values = {
            SurveyActionParameter.ATB: self.atb,
            SurveyActionParameter.VARIANT: self.variant,
            SurveyActionParameter.OS_VERSION: self.os_version,
            SurveyActionParameter.APP_VERSION: self.app_version,
            SurveyActionParameter.DAYS_INSTALLED: self.days_installed,
            SurveyActionParameter.LOCALE: self.locale,
            SurveyActionParameter.PRIVACY_PRO_STATUS: self.subscription_status,
            SurveyActionParameter.PRIVACY_PRO_PLATFORM: self.subscription_platform,
            SurveyActionParameter.PRIVACY_PRO_BILLING: self.subscription_billing,
            SurveyActionParameter.PRIVACY_PRO_DAYS_SINCE_PURCHASE: self.days_since_purchase,
            SurveyActionParameter.PRIVACY_PRO_DAYS_UNTIL_EXPIRY: self.days_until_expiry,
            SurveyActionParameter.VPN_FIRST_USED: self.vpn_first_used_days,
            SurveyActionParameter.VPN_LAST_USED: self.vpn_last_used_days,
        }
        value = values[parameter]
        if value is None:
            return None
        if isinstance(value, Enum):
            return str(value.value)
        return str(value)

    def add_parameters(self, url: str, parameters: Iterable[SurveyActionParameter]) -> str:
        parts = urlsplit(url)
        query = parse_qsl(parts.query, keep_blank_values=True)
        for parameter in parameters:
            value = self._value(parameter)
            if value is not None:
                query.append((parameter.value, value))
        return urlunsplit(parts._replace(query=urlencode(query)))
