import base64
import hashlib
import string
from unittest.mock import patch

import pytest

from trino_oauth.auth.client.models.errors import PKCEError
from trino_oauth.auth.client.models.security import PKCEParameters
from trino_oauth.auth.client.primitives.pkce import PKCEGenerator


class TestPKCEGenerator:
    def test_generate_parameters_crypto_requirements(self) -> None:
        # Arrange
        generator = PKCEGenerator()

        # Act
        params = generator.generate_parameters()

        # Assert RFC 7636 requirements
        assert len(params.code_verifier) == 128
        assert params.code_challenge_method == "S256"

        # Verify code_challenge is base64url(sha256(code_verifier))
        expected_challenge = (
            base64.urlsafe_b64encode(
                hashlib.sha256(params.code_verifier.encode("utf-8")).digest()
            )
            .decode("ascii")
            .rstrip("=")
        )
        assert params.code_challenge == expected_challenge

    def test_verifier_uses_only_letters_and_digits(self) -> None:
        # Act
        verifier = PKCEGenerator().generate_verifier()

        # Assert
        allowed = set(string.ascii_letters + string.digits)
        assert set(verifier) <= allowed
        assert "=" not in verifier

    def test_verifier_length_is_configurable_within_rfc_range(self) -> None:
        generator = PKCEGenerator()

        assert len(generator.generate_verifier(43)) == 43
        assert len(generator.generate_verifier(64)) == 64

    @pytest.mark.parametrize("length", [0, 42, 129])
    def test_verifier_length_outside_rfc_range_raises(self, length) -> None:
        with pytest.raises(PKCEError):
            PKCEGenerator().generate_verifier(length)

    def test_challenge_matches_rfc_7636_example(self) -> None:
        # RFC 7636 Appendix B
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"

        challenge = PKCEGenerator().derive_challenge(verifier)

        assert challenge == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"
        assert not challenge.endswith("=")

    def test_generate_parameters_uniqueness(self) -> None:
        # Arrange
        generator = PKCEGenerator()

        # Act - Generate multiple parameters
        params1 = generator.generate_parameters()
        params2 = generator.generate_parameters()

        # Assert - Each generation is unique
        assert params1.code_verifier != params2.code_verifier
        assert params1.code_challenge != params2.code_challenge

    def test_entropy_failure_aborts_instead_of_weakening(self) -> None:
        # Arrange
        with patch(
            "trino_oauth.auth.client.primitives.pkce.secrets.choice",
            side_effect=NotImplementedError("no entropy"),
        ):
            # Act & Assert
            with pytest.raises(PKCEError):
                PKCEGenerator().generate_parameters()


class TestPKCEParameters:
    CHALLENGE = "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_rfc_example_is_accepted(self) -> None:
        params = PKCEParameters(
            code_verifier="dBjftJeZ4CVPmB92K27uhbUJU1p1rwW1gFWFOEjXk",
            code_challenge=self.CHALLENGE,
        )

        assert params.code_challenge_method == "S256"

    @pytest.mark.parametrize(
        "verifier, challenge, method",
        [
            ("a" * 42, CHALLENGE, "S256"),
            ("a" * 129, CHALLENGE, "S256"),
            ("a" * 42 + " ", CHALLENGE, "S256"),
            ("a" * 43, CHALLENGE, "plain"),
            ("a" * 43, CHALLENGE + "=", "S256"),
        ],
    )
    def test_invalid_parameters_are_rejected(self, verifier, challenge, method):
        with pytest.raises(ValueError):
            PKCEParameters(
                code_verifier=verifier,
                code_challenge=challenge,
                code_challenge_method=method,
            )
