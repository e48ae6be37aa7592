from datetime import datetime, timezone

import pytest

from baou_notice_bot import notifier
from baou_notice_bot.config import Settings
from baou_notice_bot.models import Category, Notice

SETTINGS = Settings(resend_api_key="re_test", email_to="student@example.com")


class DummyResponse:
    def __init__(self, status_code=200, data=None, headers=None):
        self.status_code = status_code
        self._data = data if data is not None else {"id": "msg-1"}
        self.headers = headers or {}
        self.text = ""

    def json(self):
        return self._data


def make_notice(text, *, is_urgent=False, is_new=False, link=None, category=Category.OTHER):
    return Notice(
        id="id-" + text[:4],
        text=text,
        link=link,
        is_new=is_new,
        is_urgent=is_urgent,
        category=category,
        timestamp=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
    )


def test_build_subject_pluralizes_and_flags_urgent():
    assert notifier.build_subject([make_notice("one")]) == "BAOU: 1 New Notification"
    assert (
        notifier.build_subject([make_notice("one"), make_notice("two", is_urgent=True)])
        == "BAOU: 2 New Notifications (URGENT)"
    )


def test_build_email_html_escapes_and_tags():
    notices = [
        make_notice(
            "Fees <due> today",
            is_urgent=True,
            is_new=True,
            link="https://baou.edu.in/a?x=1&y=2",
            category=Category.DEADLINE,
        ),
        make_notice("પરીક્ષા સમયપત્રક", category=Category.EXAM),
    ]

    body = notifier.build_email_html(notices, checked_at=datetime(2024, 5, 1, tzinfo=timezone.utc))

    assert "Fees &lt;due&gt; today" in body
    assert 'href="https://baou.edu.in/a?x=1&amp;y=2"' in body
    assert ">Urgent<" in body
    assert ">New<" in body
    assert ">DEADLINE<" in body
    assert "ગુજરાતી" in body
    assert "Priority: 4/5" in body


def test_send_email_notification_builds_payload(monkeypatch):
    captured = {}

    def fake_post(url, json, headers, timeout):
        captured["url"] = url
        captured["json"] = json
        captured["headers"] = headers
        return DummyResponse(data={"id": "msg-42"})

    monkeypatch.setattr(notifier.requests, "post", fake_post)

    message_id = notifier.send_email_notification(
        SETTINGS, [make_notice("Exam form", is_urgent=True)]
    )

    assert message_id == "msg-42"
    assert captured["url"] == notifier.RESEND_API_URL
    assert captured["headers"]["Authorization"] == "Bearer re_test"
    payload = captured["json"]
    assert payload["to"] == ["student@example.com"]
    assert payload["from"] == SETTINGS.email_from
    assert payload["reply_to"] == SETTINGS.email_reply_to
    assert payload["subject"] == "BAOU: 1 New Notification (URGENT)"
    assert "Exam form" in payload["html"]


def test_send_email_notification_waits_on_rate_limit(monkeypatch):
    responses = [
        DummyResponse(status_code=429, headers={"retry-after": "0.5"}),
        DummyResponse(data={"id": "msg-2"}),
    ]
    sleeps = []

    monkeypatch.setattr(notifier.requests, "post", lambda *a, **kw: responses.pop(0))
    monkeypatch.setattr(notifier.time, "sleep", sleeps.append)

    assert notifier.send_email_notification(SETTINGS, [make_notice("one")]) == "msg-2"
    assert sleeps == [0.5]


def test_send_email_notification_raises_on_api_error(monkeypatch):
    monkeypatch.setattr(
        notifier.requests, "post", lambda *a, **kw: DummyResponse(status_code=422)
    )

    with pytest.raises(notifier.NotificationError) as excinfo:
        notifier.send_email_notification(SETTINGS, [make_notice("one")])

    assert excinfo.value.status_code == 422


def test_send_email_notification_wraps_transport_errors(monkeypatch):
    def fake_post(*args, **kwargs):
        raise notifier.requests.ConnectionError("boom")

    monkeypatch.setattr(notifier.requests, "post", fake_post)

    with pytest.raises(notifier.NotificationError):
        notifier.send_email_notification(SETTINGS, [make_notice("one")])


def test_send_email_notification_accepts_unreadable_success_body(monkeypatch):
    class UnreadableResponse(DummyResponse):
        def json(self):
            raise ValueError("Expecting value")

    monkeypatch.setattr(
        notifier.requests, "post", lambda *a, **kw: UnreadableResponse(status_code=200)
    )

    assert notifier.send_email_notification(SETTINGS, [make_notice("one")]) == ""


def test_format_date_uses_local_time():
    value = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    assert notifier.format_date(value) == value.astimezone().strftime(
        "%A, %B %d, %Y, %I:%M %p"
    )
