"""Remote messaging data model: configuration, messages, content and actions."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .attributes import MatchingAttribute


class EvaluationResult(str, Enum):
    """Three-valued outcome of evaluating an attribute or a rule list."""

    MATCH = "match"
    FAIL = "fail"
    NEXT_MESSAGE = "next_message"  # Cannot be decided, skip the message

    @classmethod
    def from_bool(cls, value: bool | None) -> EvaluationResult:
        return cls.MATCH if value else cls.FAIL


class RemotePlaceholder(str, Enum):
    """Illustration shown next to a message."""

    ANNOUNCE = "RemoteMessageAnnouncement"
    DDG_ANNOUNCE = "RemoteMessageDDGAnnouncement"
    CRITICAL_UPDATE = "RemoteMessageCriticalAppUpdate"
    APP_UPDATE = "RemoteMessageAppUpdate"
    MAC_COMPUTER = "RemoteMessageMacComputer"
    NEW_FOR_MAC_AND_WINDOWS = "RemoteMessageNewForMacAndWindows"
    PRIVACY_SHIELD = "RemoteMessagePrivacyShield"


# =============================================================================
# Actions
# =============================================================================


@dataclass(frozen=True)
class ShareAction:
    value: str
    title: str | None = None


@dataclass(frozen=True)
class UrlAction:
    value: str


@dataclass(frozen=True)
class SurveyAction:
    value: str


@dataclass(frozen=True)
class AppStoreAction:
    pass


@dataclass(frozen=True)
class DismissAction:
    pass


RemoteAction = Union[ShareAction, UrlAction, SurveyAction, AppStoreAction, DismissAction]


# =============================================================================
# Content
# =============================================================================


@dataclass(frozen=True)
class ContentTranslation:
    """Per-locale text overrides. Missing fields keep the original text."""

    title_text: str | None = None
    description_text: str | None = None
    primary_action_text: str | None = None
    secondary_action_text: str | None = None


@dataclass(frozen=True)
class SmallContent:
    title_text: str
    description_text: str

    def localized(self, translation: ContentTranslation) -> SmallContent:
        return replace(
            self,
            title_text=translation.title_text or self.title_text,
            description_text=translation.description_text or self.description_text,
        )


@dataclass(frozen=True)
class MediumContent:
    title_text: str
    description_text: str
    placeholder: RemotePlaceholder

    def localized(self, translation: ContentTranslation) -> MediumContent:
        return replace(
            self,
            title_text=translation.title_text or self.title_text,
            description_text=translation.description_text or self.description_text,
        )


@dataclass(frozen=True)
class BigSingleActionContent:
    title_text: str
    description_text: str
    placeholder: RemotePlaceholder
    primary_action_text: str
    primary_action: RemoteAction

    def localized(self, translation: ContentTranslation) -> BigSingleActionContent:
        return replace(
            self,
            title_text=translation.title_text or self.title_text,
            description_text=translation.description_text or self.description_text,
            primary_action_text=translation.primary_action_text or self.primary_action_text,
        )


@dataclass(frozen=True)
class BigTwoActionContent:
    title_text: str
    description_text: str
    placeholder: RemotePlaceholder
    primary_action_text: str
    primary_action: RemoteAction
    secondary_action_text: str
    secondary_action: RemoteAction

    def localized(self, translation: ContentTranslation) -> BigTwoActionContent:
        return replace(
            self,
            title_text=translation.title_text or self.title_text,
            description_text=translation.description_text or self.description_text,
            primary_action_text=translation.primary_action_text or self.primary_action_text,
            secondary_action_text=translation.secondary_action_text or self.secondary_action_text,
        )


@dataclass(frozen=True)
class PromoSingleActionContent:
    title_text: str
    description_text: str
    placeholder: RemotePlaceholder
    action_text: str
    action: RemoteAction

    def localized(self, translation: ContentTranslation) -> PromoSingleActionContent:
        # Promo messages reuse the primary action translation for their single action
        return replace(
            self,
            title_text=translation.title_text or self.title_text,
            description_text=translation.description_text or self.description_text,
            action_text=translation.primary_action_text or self.action_text,
        )


RemoteMessageContent = Union[
    SmallContent,
    MediumContent,
    BigSingleActionContent,
    BigTwoActionContent,
    PromoSingleActionContent,
]


# =============================================================================
# Messages and rules
# =============================================================================


@dataclass(frozen=True)
class RemoteMessageModel:
    """A message eligible for display when its rules allow it.

    Attributes:
        id: Stable message id, used for dismissal and percentile buckets
        content: What to render
        matching_rules: Rule ids that must match
        exclusion_rules: Rule ids that must not match
        is_metrics_enabled: Whether display/interaction pixels may be sent
    """

    id: str
    content: RemoteMessageContent
    matching_rules: tuple[int, ...] = ()
    exclusion_rules: tuple[int, ...] = ()
    is_metrics_enabled: bool = True

    def localized(self, translation: ContentTranslation) -> RemoteMessageModel:
        return replace(self, content=self.content.localized(translation))


@dataclass(frozen=True)
class TargetPercentile:
    """Staged rollout gate: users above ``before`` do not see the message yet."""

    before: float | None = None


@dataclass(frozen=True)
class RemoteConfigRule:
    id: int
    attributes: tuple[MatchingAttribute, ...] = ()
    target_percentile: TargetPercentile | None = None


@dataclass(frozen=True)
class RemoteConfigModel:
    """A mapped remote messaging configuration.

    Messages keep their document order; the first eligible message wins.
    """

    version: int
    messages: tuple[RemoteMessageModel, ...] = ()
    rules: tuple[RemoteConfigRule, ...] = ()
    _rules_by_id: dict[int, RemoteConfigRule] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        index: dict[int, RemoteConfigRule] = {}
        for rule in self.rules:
            # First definition of an id wins
            index.setdefault(rule.id, rule)
        object.__setattr__(self, "_rules_by_id", index)

    def rule(self, rule_id: int) -> RemoteConfigRule | None:
        return self._rules_by_id.get(rule_id)
