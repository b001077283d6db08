from __future__ import annotations

import pytest

import content


def test_videos_filtered_by_belt_and_status():
    content.create_video("Armbar from guard", "https://videos.example.com/1", belt_level="white")
    content.create_video("Berimbolo", "https://videos.example.com/2", belt_level="purple")
    general = content.create_video("Warm-up routine", "https://videos.example.com/3", category="drill")
    hidden = content.create_video("Old seminar", "https://videos.example.com/4", category="other")
    content.set_video_active(hidden, False)

    assert [v.title for v in content.list_videos()] == ["Armbar from guard", "Berimbolo", "Warm-up routine"]
    assert [v.title for v in content.list_videos(belt_level="white")] == ["Armbar from guard", "Warm-up routine"]
    assert [v.id for v in content.list_videos(category="drill")] == [general]
    assert len(content.list_videos(active_only=False)) == 4


def test_update_video():
    video_id = content.create_video("Draft", "https://videos.example.com/x")
    content.update_video(video_id, "Kimura", "https://videos.example.com/kimura", "technique", "blue", "Top side")
    video = content.list_videos()[0]
    assert (video.title, video.belt_level, video.description) == ("Kimura", "blue", "Top side")


def test_replace_placeholders():
    text = "Salaam {{firstName}},\nWelcome to **{{locationName}}**. {{firstName}}, see you soon."
    assert content.replace_placeholders(text, {"firstName": "Amir", "locationName": "Main Academy"}) == (
        "Salaam Amir,<br>Welcome to <strong>Main Academy</strong>. Amir, see you soon."
    )
    # Unknown placeholders stay as written
    assert content.replace_placeholders("{{eventTitle}}", {}) == "{{eventTitle}}"


def test_email_template_lifecycle():
    template_id = content.create_email_template(
        "welcome", "Welcome", "Welcome, {{firstName}}!",
        greeting="Hi {{firstName}},", body_intro="Glad to have you.", signature="The Team",
    )
    assert content.get_email_template("welcome").subject == "Welcome, {{firstName}}!"

    content.update_email_template(template_id, subject="Hello {{firstName}}", button_text="Open portal",
                                  button_url="https://dojo.example.com/{{firstName}}")
    subject, html = content.render_email("welcome", {"firstName": "Sara"})
    assert subject == "Hello Sara"
    assert "<p>Hi Sara,</p>" in html
    assert '<a href="https://dojo.example.com/Sara">Open portal</a>' in html

    content.set_email_template_active(template_id, False)
    assert content.get_email_template("welcome") is None
    assert content.get_email_template("welcome", active_only=False).id == template_id
    assert content.render_email("welcome", {}) is None


def test_email_template_key_is_unique():
    content.create_email_template("welcome", "Welcome", "Hi")
    with pytest.raises(ValueError):
        content.create_email_template("welcome", "Another", "Hi again")
    with pytest.raises(ValueError):
        content.update_email_template(1, template_key="renamed")


def test_default_templates_installed_once():
    assert content.install_default_templates() == len(content.DEFAULT_EMAIL_TEMPLATES)
    welcome = content.get_email_template("welcome")
    content.update_email_template(welcome.id, subject="Edited")

    assert content.install_default_templates() == 0
    assert content.get_email_template("welcome").subject == "Edited"
    assert [t.template_key for t in content.list_email_templates()] == [
        "announcement", "membership_activated", "welcome",
    ]
