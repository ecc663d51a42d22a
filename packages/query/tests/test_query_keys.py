"""Tests for query key construction and matching."""

from thub_query.keys import (
    active_alerts_key,
    certificate_key,
    events_key,
    exams_key,
    key_endpoint,
    key_params,
    make_key,
    matches_prefix,
    products_key,
    user_key,
)


def test_keys_without_params_are_just_the_endpoint():
    assert user_key() == ("/api/user",)
    assert active_alerts_key() == ("/api/alerts/active",)
    assert exams_key() == ("/api/admin/exams",)


def test_params_are_sorted_and_none_dropped():
    assert make_key("/x", b=2, a=1, c=None) == ("/x", (("a", 1), ("b", 2)))
    assert make_key("/x", b=2, a=1) == make_key("/x", a=1, b=2)
    assert make_key("/x", a=None) == ("/x",)


def test_exam_keys_differ_by_course():
    assert exams_key(7) == ("/api/admin/exams", (("courseId", 7),))
    assert exams_key(7) != exams_key(9)
    assert hash(exams_key(7)) == hash(exams_key(7))


def test_key_round_trips_to_request_parts():
    key = events_key(upcoming=True, active=True)
    assert key_endpoint(key) == "/api/events"
    assert key_params(key) == {"active": True, "upcoming": True}
    assert key_params(user_key()) == {}
    assert key_params(products_key(active=None)) == {}


def test_certificate_key_embeds_the_id():
    key = certificate_key("THB-2023-12345")
    assert key_endpoint(key) == "/api/certificates/verify/THB-2023-12345"


def test_prefix_matching():
    assert matches_prefix(exams_key(7), exams_key())
    assert matches_prefix(exams_key(), exams_key())
    assert not matches_prefix(user_key(), exams_key())
    assert not matches_prefix(exams_key(), exams_key(7))
