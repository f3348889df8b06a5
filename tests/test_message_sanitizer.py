"""Tests for chat message sanitization."""

import pytest

from houses_bc.services.message_sanitizer import MessageRejectedError, MessageSanitizer


class TestSanitize:
    def test_plain_question_passes(self):
        text = "What is the PTT exemption on a $650,000 condo?"
        assert MessageSanitizer.sanitize(text) == text

    def test_html_is_stripped(self):
        assert MessageSanitizer.sanitize("<b>Hello</b> <i>there</i>") == "Hello there"

    def test_script_content_is_dropped(self):
        assert MessageSanitizer.sanitize("<script>alert(1)</script>Hi") == "Hi"

    def test_whitespace_is_normalised(self):
        assert MessageSanitizer.sanitize("  how   much\n\ndown?  ") == "how much down?"

    @pytest.mark.parametrize(
        "message",
        [
            "eval(process.env)",
            "please import(os)",
            "javascript:alert(1)",
            "${process.exit()}",
            "DROP TABLE users",
            "select * from users; --",
            "../../etc/passwd",
            "ls && rm -rf",
            "<img src=x onerror=alert(1)>x onclick=go()",
        ],
    )
    def test_malicious_input_rejected(self, message):
        with pytest.raises(MessageRejectedError):
            MessageSanitizer.sanitize(message)

    def test_too_long(self):
        with pytest.raises(MessageRejectedError, match="Maximum 10"):
            MessageSanitizer.sanitize("a" * 11, max_length=10)

    @pytest.mark.parametrize("message", ["", "    ", "<p></p>"])
    def test_empty_rejected(self, message):
        with pytest.raises(MessageRejectedError):
            MessageSanitizer.sanitize(message)


class TestHelpers:
    def test_spam_keywords(self):
        assert MessageSanitizer.is_spam("CLICK HERE for free money") is True
        assert MessageSanitizer.is_spam("When should I get pre-approved?") is False

    @pytest.mark.parametrize(
        "session_id,valid",
        [
            ("3f2b8c1e-9a4d-4e7b-8c6a-1d2e3f4a5b6c", True),
            ("short", False),
            ("has spaces in it here", False),
            ("x" * 51, False),
            ("", False),
        ],
    )
    def test_session_id(self, session_id, valid):
        assert MessageSanitizer.validate_session_id(session_id) is valid

    def test_response_strips_markup(self):
        assert MessageSanitizer.sanitize_response("<p>Sure!</p> ") == "Sure!"

    def test_knowledge_keeps_basic_formatting(self):
        cleaned = MessageSanitizer.sanitize_knowledge_content(
            '<p class="x" onclick="bad()">Rates <strong>fell</strong></p>'
            '<a href="http://x">link</a><script>steal()</script>'
        )
        assert cleaned == "<p>Rates <strong>fell</strong></p>link"
