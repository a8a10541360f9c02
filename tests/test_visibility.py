"""
Visibility policy decisions, checked without a database.

Covers:
1. Request rows: open + unexpired + (owner or district/blood-group match)
2. Request phones: owner or approved donor only
3. Callers without a profile only see their own rows
4. Profile rows and phones
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

from lifeflow.utils.visibility import request_access, profile_access, AccessDecision

NOW = datetime(2025, 9, 30, 12, 0)
ALICE, BOB, CAROL = 1, 2, 3


def blood_request(**overrides):
    values = dict(
        id=10,
        requester_id=ALICE,
        district='Ernakulam',
        blood_group='O+',
        status='open',
        expires_at=NOW + timedelta(hours=24),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def profile(user_id, district='Ernakulam', blood_group='O+'):
    return SimpleNamespace(user_id=user_id, district=district, blood_group=blood_group)


class TestRequestAccess:

    def test_matching_donor_reads_row_without_phone(self):
        decision = request_access(BOB, profile(BOB), blood_request(), now=NOW)
        assert decision == AccessDecision(True, False)

    def test_owner_reads_row_and_phone(self):
        decision = request_access(ALICE, profile(ALICE), blood_request(), now=NOW)
        assert decision == AccessDecision(True, True)

    def test_other_district_is_denied(self):
        decision = request_access(CAROL, profile(CAROL, district='Kottayam'), blood_request(), now=NOW)
        assert decision.can_read is False

    def test_other_blood_group_is_denied(self):
        decision = request_access(CAROL, profile(CAROL, blood_group='A+'), blood_request(), now=NOW)
        assert decision.can_read is False

    def test_approved_donor_reads_phone(self):
        decision = request_access(BOB, profile(BOB), blood_request(), approved_donor_ids={BOB}, now=NOW)
        assert decision == AccessDecision(True, True)

    def test_approval_for_someone_else_does_not_leak_phone(self):
        decision = request_access(BOB, profile(BOB), blood_request(), approved_donor_ids={CAROL}, now=NOW)
        assert decision.can_read_phone is False

    def test_expired_request_is_hidden_even_from_owner_feed(self):
        stale = blood_request(expires_at=NOW)
        assert request_access(BOB, profile(BOB), stale, now=NOW).can_read is False
        assert request_access(ALICE, profile(ALICE), stale, now=NOW).can_read is False

    def test_closed_statuses_are_hidden(self):
        for status in ('claimed', 'fulfilled', 'expired', 'cancelled'):
            decision = request_access(BOB, profile(BOB), blood_request(status=status), {BOB}, now=NOW)
            assert decision.can_read is False, status
            assert decision.can_read_phone is False, status

    def test_caller_without_profile_sees_only_own_requests(self):
        assert request_access(BOB, None, blood_request(), now=NOW).can_read is False
        assert request_access(ALICE, None, blood_request(), now=NOW).can_read is True


class TestProfileAccess:

    def test_owner_reads_full_profile(self):
        assert profile_access(BOB, profile(BOB), profile(BOB)) == AccessDecision(True, True)

    def test_same_district_reads_profile_without_phone(self):
        decision = profile_access(BOB, profile(BOB), profile(ALICE, blood_group='B+'))
        assert decision == AccessDecision(True, False)

    def test_other_district_is_denied(self):
        decision = profile_access(CAROL, profile(CAROL, district='Kottayam'), profile(ALICE))
        assert decision.can_read is False

    def test_approved_counterpart_reads_phone(self):
        decision = profile_access(BOB, profile(BOB), profile(ALICE), approved_counterpart_ids={ALICE})
        assert decision == AccessDecision(True, True)

    def test_no_profile_means_no_access(self):
        assert profile_access(BOB, None, profile(ALICE)).can_read is False

    def test_approved_counterpart_in_another_district_reads_full_profile(self):
        decision = profile_access(ALICE, profile(ALICE), profile(CAROL, district='Kottayam'),
                                  approved_counterpart_ids={CAROL})
        assert decision == AccessDecision(True, True)
