"""Tests for template rendering and lookup."""

from __future__ import annotations

import pytest

from outdrinkme.application.use_cases.notifications import DEFAULT_TEMPLATES, get_template, seed_templates
from outdrinkme.domain.entities import NotificationPriority, NotificationTemplate, NotificationType
from outdrinkme.domain.entities.notification_template import render_template
from outdrinkme.domain.exceptions import TemplateNotFoundError
from outdrinkme.infrastructure.models import NotificationTemplateModel
from outdrinkme.infrastructure.repositories import NotificationTemplateRepository


def test_render_replaces_every_occurrence() -> None:
    rendered = render_template("{{username}} vs {{username}}: {{days}}", {"username": "bob", "days": 7})

    assert rendered == "bob vs bob: 7"


def test_render_leaves_unknown_placeholders() -> None:
    assert render_template("Hi {{username}}", {"other": "x"}) == "Hi {{username}}"
    assert render_template("Hi {{username}}", None) == "Hi {{username}}"


def test_template_render_returns_title_and_body() -> None:
    template = NotificationTemplate(
        id=None,
        type=NotificationType.FRIEND_REQUEST,
        title_template="{{username}} says hi",
        body_template="Reply to {{username}}",
    )

    assert template.render({"username": "carol"}) == ("carol says hi", "Reply to carol")


def test_every_type_has_a_default_template() -> None:
    assert {template.type for template in DEFAULT_TEMPLATES} == set(NotificationType)


def test_get_template_raises_when_missing(session) -> None:
    with pytest.raises(TemplateNotFoundError) as exc_info:
        get_template(session, NotificationType.WEEKLY_RECAP)

    assert exc_info.value.notification_type == "weekly_recap"


def test_seed_templates_overwrites_existing_rows(session) -> None:
    seed_templates(session)
    custom = NotificationTemplate(
        id=None,
        type=NotificationType.WEEKLY_RECAP,
        title_template="Recap",
        body_template="{{days}} days",
        default_priority=NotificationPriority.HIGH,
        ttl_hours=0,
    )
    seed_templates(session, [custom])

    template = get_template(session, "weekly_recap")
    assert template.title_template == "Recap"
    assert template.default_priority == NotificationPriority.HIGH
    assert template.ttl_hours == 0
    assert len(NotificationTemplateRepository(session).list()) == len(DEFAULT_TEMPLATES)


def test_rows_with_unregistered_type_are_ignored(session, templates) -> None:
    session.add(
        NotificationTemplateModel(
            type="friend_poked_you",
            title_template="Poke",
            body_template="{{username}} poked you",
            default_priority="low",
            ttl_hours=1,
        )
    )
    session.commit()
    repository = NotificationTemplateRepository(session)

    assert repository.get_by_type("friend_poked_you") is None
    assert [template.type for template in repository.list()] == sorted(
        (template.type for template in DEFAULT_TEMPLATES), key=lambda value: value.value
    )
    with pytest.raises(TemplateNotFoundError):
        get_template(session, "friend_poked_you")
