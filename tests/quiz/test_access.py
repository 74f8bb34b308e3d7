from __future__ import annotations

import typing as t

import pytest

from proctor.model import Activity, ActivityID, Attempt, AttemptState, EffectiveRules, OverdueHandling, UserID
from proctor.quiz import AccessManager
from proctor.quiz.access import AccessRequest, AccessRule, DelayBetweenAttemptsRule, NumAttemptsRule, \
    OpenCloseDateRule, PasswordRule, SubnetRule, TimeLimitRule
from proctor.quiz.access.subnet import address_in_subnets

T = 1_700_000_000


def rules(**kwargs: t.Any) -> EffectiveRules:
    return EffectiveRules(activity_id=ActivityID(), user_id=UserID(), **kwargs)


def closed(
    attempt_factory: t.Callable[..., Attempt], activity: Activity, *spans: tuple[int, int]
) -> list[Attempt]:
    user_id = UserID()
    return [
        attempt_factory(
            activity, user_id, attempt_number=n, start_time=s, finish_time=f, state=AttemptState.Finished
        )
        for n, (s, f) in enumerate(spans, start=1)
    ]


class TestNumAttempts(object):
    def test_exhausted(
        self,
        access: AccessManager,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        prior = closed(attempt_factory, activity_factory(), (T, T + 10), (T + 20, T + 30))

        messages = access.evaluate(rules(max_attempts=2), T + 100, prior_attempts=prior)

        assert messages == [NumAttemptsRule.Exhausted]
        assert access.is_finished(rules(max_attempts=2), T + 100, prior)

    def test_unlimited(
        self,
        access: AccessManager,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        prior = closed(attempt_factory, activity_factory(), *((T + i * 100, T + i * 100 + 10) for i in range(10)))
        assert access.evaluate(rules(max_attempts=0), T + 5000, prior_attempts=prior) == []

    def test_previews_do_not_count(
        self,
        access: AccessManager,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        previews = closed(attempt_factory, activity_factory(), (T, T + 1))
        prior = [a.model_copy(update={"is_preview": True}) for a in previews]
        assert access.evaluate(rules(max_attempts=1), T + 100, prior_attempts=prior) == []

    def test_continuing_an_attempt_ignores_the_count(
        self,
        access: AccessManager,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        activity = activity_factory()
        prior = closed(attempt_factory, activity, (T, T + 10))
        current = attempt_factory(activity, UserID(), start_time=T + 20)

        assert access.evaluate(rules(max_attempts=1), T + 30, attempt=current, prior_attempts=prior) == []


class TestOpenClose(object):
    def test_before_opening(self, access: AccessManager) -> None:
        assert access.evaluate(rules(open_time=T + 100), T) == [OpenCloseDateRule.NotAvailable]

    def test_after_closing(self, access: AccessManager) -> None:
        assert access.evaluate(rules(close_time=T), T + 1) == [OpenCloseDateRule.NotAvailable]

    def test_within_window(self, access: AccessManager) -> None:
        assert access.evaluate(rules(open_time=T - 100, close_time=T + 100), T) == []

    def test_grace_period_after_closing(
        self,
        access: AccessManager,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        """Attempts already under way may continue through the grace period after the close."""
        r = rules(close_time=T, grace_period_seconds=300, overdue_handling=OverdueHandling.GracePeriod)
        current = attempt_factory(activity_factory(), UserID(), start_time=T - 600)

        assert access.evaluate(r, T + 200, attempt=current) == []
        assert access.evaluate(r, T + 301, attempt=current) == [OpenCloseDateRule.NotAvailable]

    def test_grace_period_does_not_admit_new_attempts(self, access: AccessManager) -> None:
        r = rules(close_time=T, grace_period_seconds=300, overdue_handling=OverdueHandling.GracePeriod)

        assert access.evaluate(r, T + 30) == [OpenCloseDateRule.NotAvailable]
        assert access.evaluate(r, T + 301) == [OpenCloseDateRule.NotAvailable]
        assert access.is_finished(r, T + 30, [])

    def test_description(self, access: AccessManager) -> None:
        lines = access.describe(rules(open_time=T - 100, close_time=T + 100, max_attempts=3), T)
        assert "Attempts allowed: 3" in lines
        assert any(line.startswith("This quiz closes on") for line in lines)


class TestPassword(object):
    def test_missing_and_wrong(self, access: AccessManager) -> None:
        r = rules(password="secret")
        assert access.evaluate(r, T) == [PasswordRule.Required]
        assert access.evaluate(r, T, password="guess") == [PasswordRule.Incorrect]
        assert access.evaluate(r, T, password="secret") == []

    def test_any_group_password(self, access: AccessManager) -> None:
        r = rules(password="alpha", extra_passwords=("beta",))
        assert access.evaluate(r, T, password="beta") == []

    def test_only_checked_for_new_attempts(
        self,
        access: AccessManager,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        current = attempt_factory(activity_factory(), UserID(), start_time=T)
        assert access.evaluate(rules(password="secret"), T + 5, attempt=current) == []


class TestSubnet(object):
    @pytest.mark.parametrize(
        "address, subnets, allowed",
        [
            ("192.168.10.5", "192.168.0.0/16", True),
            ("10.0.0.1", "192.168.0.0/16", False),
            ("192.168.10.15", "192.168.10.1-20", True),
            ("192.168.10.25", "192.168.10.1-20", False),
            ("10.4.5.6", "192.168., 10.", True),
            ("10.4.5.6", "10.4", True),
            ("10.40.5.6", "10.4", False),
            ("172.16.0.1", "172.16.0.1", True),
            ("2001:db8::1", "2001:db8::/32", True),
            ("not-an-address", "10.", False),
        ],
    )
    def test_matching(self, address: str, subnets: str, allowed: bool) -> None:
        assert address_in_subnets(address, subnets) is allowed

    def test_refusal(self, access: AccessManager) -> None:
        r = rules(subnet="10.0.0.0/8")
        assert access.evaluate(r, T, ip_address="10.1.2.3") == []
        assert access.evaluate(r, T, ip_address="192.168.1.1") == [SubnetRule.Refused]
        assert access.evaluate(r, T) == [SubnetRule.Refused]


class TestDelayBetweenAttempts(object):
    def test_must_wait_after_first_attempt(
        self,
        access: AccessManager,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        prior = closed(attempt_factory, activity_factory(), (T, T + 100))
        r = rules(delay1_seconds=600)

        [message] = access.evaluate(r, T + 200, prior_attempts=prior)
        assert message.startswith("You must wait before you may re-attempt this quiz.")
        assert access.evaluate(r, T + 701, prior_attempts=prior) == []

    def test_second_delay_after_later_attempts(
        self,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        prior = closed(attempt_factory, activity_factory(), (T, T + 100), (T + 1000, T + 1100))
        rule = DelayBetweenAttemptsRule(rules(delay1_seconds=600, delay2_seconds=3600), AccessRequest(now=T))

        assert rule.next_start_time(prior) == T + 1100 + 3600

    def test_wait_capped_at_time_limit(
        self,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        """An attempt finished late by the grace period counts as ending at its time limit."""
        prior = closed(attempt_factory, activity_factory(), (T, T + 900))
        rule = DelayBetweenAttemptsRule(rules(delay1_seconds=600, time_limit_seconds=300), AccessRequest(now=T))

        assert rule.next_start_time(prior) == T + 300 + 600

    def test_quiz_closes_first(
        self,
        access: AccessManager,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        prior = closed(attempt_factory, activity_factory(), (T, T + 100))
        r = rules(delay1_seconds=3600, close_time=T + 1000)

        assert access.evaluate(r, T + 200, prior_attempts=prior) == [DelayBetweenAttemptsRule.CannotWait]
        assert access.is_finished(r, T + 200, prior)


class TestManager(object):
    def test_collects_every_reason(
        self,
        access: AccessManager,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        prior = closed(attempt_factory, activity_factory(), (T, T + 10))
        r = rules(max_attempts=1, password="secret", subnet="10.")

        messages = access.evaluate(r, T + 100, prior_attempts=prior, ip_address="192.168.0.1")

        assert set(messages) == {NumAttemptsRule.Exhausted, PasswordRule.Required, SubnetRule.Refused}

    def test_register_custom_rule(self, access: AccessManager) -> None:
        class WeekendRule(AccessRule):
            Closed = "Closed for the weekend"

            def prevent_access(self) -> str | None:
                return self.Closed

        access.register(WeekendRule)
        access.register(WeekendRule)

        assert access.evaluate(rules(), T) == [WeekendRule.Closed]

    def test_time_left_display(
        self,
        access: AccessManager,
        activity_factory: t.Callable[..., Activity],
        attempt_factory: t.Callable[..., Attempt],
    ) -> None:
        current = attempt_factory(activity_factory(), UserID(), start_time=T)

        assert access.time_left_display(rules(time_limit_seconds=600), current, T + 100) == 500
        assert access.time_left_display(rules(), current, T + 100) is None
        # a distant close date is not shown
        assert access.time_left_display(rules(close_time=T + 86400), current, T + 100) is None
        assert access.time_left_display(rules(close_time=T + 1000), current, T + 100) == 900

    def test_preview_ignores_time_limit(self, access: AccessManager) -> None:
        assert "Time limit: 10 mins" in access.describe(rules(time_limit_seconds=600), T)
        built = access.build(rules(time_limit_seconds=600), AccessRequest(now=T, can_ignore_time_limits=True))
        assert not any(isinstance(r, TimeLimitRule) for r in built)
