"""
Selection of the message to show from a remote messaging configuration.

A message is eligible when it has not been dismissed, every matching
rule matches and no exclusion rule matches. Messages are tried in
document order; the first eligible one is returned. A message without
any rules is always eligible.

Rule lists are evaluated rule by rule. Inside a rule the percentile gate
is checked first, then the attributes in order, stopping at the first
attribute that fails or cannot be decided. An unknown rule id makes the
whole message undecidable and it is skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .attributes import MatchingAttribute, UnknownMatchingAttribute
from .matchers import AppAttributeMatcher, DeviceAttributeMatcher, UserAttributeMatcher
from .models import (
    EvaluationResult,
    RemoteConfigModel,
    RemoteConfigRule,
    RemoteMessageModel,
)
from .percentile_store import PercentileStore

_logger = logging.getLogger(__name__)


class RemoteMessagingConfigMatcher:
    """Chooses the next message for the current app, device and user.

    Args:
        app_matcher: App attribute values
        device_matcher: Device attribute values
        user_matcher: User attribute values
        percentile_store: Source of per-message rollout percentiles
        dismissed_message_ids: Messages never to show again
    """

    def __init__(
        self,
        app_matcher: AppAttributeMatcher,
        device_matcher: DeviceAttributeMatcher,
        user_matcher: UserAttributeMatcher,
        percentile_store: PercentileStore,
        dismissed_message_ids: Iterable[str] = (),
    ) -> None:
        self.app_matcher = app_matcher
        self.device_matcher = device_matcher
        self.user_matcher = user_matcher
        self.percentile_store = percentile_store
        self.dismissed_message_ids = frozenset(dismissed_message_ids)

    def evaluate(self, config: RemoteConfigModel) -> RemoteMessageModel | None:
        """Return the first eligible message of ``config``, or None."""
        for message in config.messages:
            if message.id in self.dismissed_message_ids:
                continue

            if not message.matching_rules and not message.exclusion_rules:
                _logger.debug("Message %s has no rules, selecting it", message.id)
                return message

            matching = self.evaluate_matching_rules(message.matching_rules, message.id, config)
            exclusion = self.evaluate_exclusion_rules(message.exclusion_rules, message.id, config)
            if matching is EvaluationResult.MATCH and exclusion is EvaluationResult.FAIL:
                _logger.debug("Message %s selected", message.id)
                return message
            _logger.debug(
                "Message %s skipped (matching=%s, exclusion=%s)",
                message.id,
                matching.value,
                exclusion.value,
            )
        return None

    def _percentile_excludes(self, rule: RemoteConfigRule, message_id: str) -> bool:
        gate = rule.target_percentile
        if gate is None or gate.before is None:
            return False
        return self.percentile_store.percentile(message_id) > gate.before

    def _evaluate_rules(
        self,
        rule_ids: Iterable[int],
        message_id: str,
        config: RemoteConfigModel,
        initial: EvaluationResult,
    ) -> EvaluationResult:
        result = initial
        for rule_id in rule_ids:
            rule = config.rule(rule_id)
            if rule is None:
                _logger.debug("Message %s references unknown rule %s", message_id, rule_id)
                return EvaluationResult.NEXT_MESSAGE

            if self._percentile_excludes(rule, message_id):
                return EvaluationResult.FAIL

            result = initial
            for attribute in rule.attributes:
                result = self.evaluate_attribute(attribute)
                if result is not EvaluationResult.MATCH:
                    break

            if result is not EvaluationResult.FAIL:
                return result
        return result

    def evaluate_matching_rules(
        self, rule_ids: Iterable[int], message_id: str, config: RemoteConfigModel
    ) -> EvaluationResult:
        """MATCH when a rule matches; FAIL when every rule fails.

        An empty list counts as a match.
        """
        return self._evaluate_rules(rule_ids, message_id, config, EvaluationResult.MATCH)

    def evaluate_exclusion_rules(
        self, rule_ids: Iterable[int], message_id: str, config: RemoteConfigModel
    ) -> EvaluationResult:
        """MATCH when a rule matches (the message is excluded); FAIL otherwise.

        An empty list, or a rule without attributes, excludes nothing.
        """
        return self._evaluate_rules(rule_ids, message_id, config, EvaluationResult.FAIL)

    def evaluate_attribute(self, attribute: MatchingAttribute) -> EvaluationResult:
        if isinstance(attribute, UnknownMatchingAttribute):
            return attribute.evaluate()
        for matcher in (self.app_matcher, self.device_matcher, self.user_matcher):
            result = matcher.evaluate(attribute)
            if result is not None:
                return result
        return EvaluationResult.NEXT_MESSAGE
