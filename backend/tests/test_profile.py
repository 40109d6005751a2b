"""Tests for greeting, identity and help answers."""

import pytest

from cashbook.schemas.assistant import UserProfile
from cashbook.services.assistant.profile import answer_profile_question, is_profile_question


@pytest.fixture
def profile():
    return UserProfile(id=1, username="asha", email="asha@example.com", mobile="9876543210")


class TestGreeting:
    @pytest.mark.parametrize("text", ["hi", "hello", "hey!", "good morning", "hello?"])
    def test_greeting(self, profile, text):
        assert answer_profile_question(text, profile) == (
            'Hi asha! Ask me things like "mar inflow", "spent last 7 days in mar", or "mar full details".'
        )

    def test_greeting_without_profile(self):
        assert answer_profile_question("hi", None).startswith("Hi there!")

    def test_greeting_must_be_whole_message(self, profile):
        assert answer_profile_question("hi what did i spend", profile) is None


class TestIdentity:
    @pytest.mark.parametrize("text", ["name", "my name", "what is my name", "username", "my user name"])
    def test_name(self, profile, text):
        assert answer_profile_question(text, profile) == "Your username is asha."

    @pytest.mark.parametrize("text", ["my phone number", "registered mobile", "contact no"])
    def test_phone(self, profile, text):
        assert answer_profile_question(text, profile) == "Your registered phone number is 9876543210."

    def test_phone_missing(self):
        answer = answer_profile_question("my phone number", UserProfile(id=1, username="asha"))
        assert answer == "I can't see your phone number right now, but you can check it in Profile."

    @pytest.mark.parametrize("text", ["my email", "email id", "mail address", "email"])
    def test_email(self, profile, text):
        assert answer_profile_question(text, profile) == "Your email id is asha@example.com."

    def test_email_missing(self):
        assert "can't see your email" in answer_profile_question("my email", None)


class TestHelp:
    def test_capabilities(self, profile):
        answer = answer_profile_question("what can you do", profile)
        assert answer.startswith("asha, I can answer using your cashbook data")
        assert "- recent transactions" in answer

    def test_env_note(self, profile):
        answer = answer_profile_question("what is this openai api key message", profile)
        assert answer.startswith("asha, that message is about enabling optional AI answers.")


class TestNotProfile:
    @pytest.mark.parametrize("text", ["mar inflow", "number for mar", "balance", "top category this month"])
    def test_data_questions_pass_through(self, profile, text):
        assert not is_profile_question(text)
        assert answer_profile_question(text, profile) is None
