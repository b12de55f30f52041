"""Tests for password generation."""

import string

import pytest

from azure_secrets_core.exceptions import ServiceError
from azure_secrets_core.passwords import Passwords, random_base62


class TestPasswords:
    def test_default_passwords_are_base62(self, ctx):
        password = Passwords().generate(ctx)

        assert len(password) == 36
        assert set(password) <= set(string.ascii_letters + string.digits)

    def test_passwords_are_unique(self):
        assert len({random_base62() for _ in range(50)}) == 50

    def test_policy_generator_is_used(self, ctx):
        calls = []

        def generator(gen_ctx, policy_name):
            calls.append(policy_name)
            return "from-policy"

        passwords = Passwords(policy_name="strict", policy_generator=generator)

        assert passwords.generate(ctx) == "from-policy"
        assert calls == ["strict"]

    def test_policy_without_generator(self, ctx):
        with pytest.raises(ServiceError, match="no policy generator"):
            Passwords(policy_name="strict").generate(ctx)

    def test_generator_failure_is_wrapped(self, ctx):
        def generator(gen_ctx, policy_name):
            raise KeyError("policy missing")

        with pytest.raises(ServiceError, match="unable to generate password") as exc_info:
            Passwords(policy_name="strict", policy_generator=generator).generate(ctx)

        assert isinstance(exc_info.value.cause, KeyError)
