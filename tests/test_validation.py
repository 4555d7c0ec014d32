"""
Unit tests for registration field validation.
"""

from datetime import date

import pytest

from dashauth.core.validation import (
    is_adult,
    is_valid_cpf,
    is_valid_email,
    is_valid_name,
    is_valid_phone,
    password_problems,
    validate_registration,
)

TODAY = date(2025, 3, 14)


class TestFieldRules:

    @pytest.mark.parametrize("cpf", ["529.982.247-25", "52998224725"])
    def test_valid_cpf(self, cpf):
        assert is_valid_cpf(cpf)

    @pytest.mark.parametrize("cpf", ["529.982.247-26", "111.111.111-11", "1234", ""])
    def test_invalid_cpf(self, cpf):
        assert not is_valid_cpf(cpf)

    @pytest.mark.parametrize("phone", ["(11) 91234-5678", "(21) 3456-7890"])
    def test_valid_phone(self, phone):
        assert is_valid_phone(phone)

    @pytest.mark.parametrize("phone", ["11912345678", "(11)91234-5678", "(1) 91234-5678"])
    def test_invalid_phone(self, phone):
        assert not is_valid_phone(phone)

    def test_names_cannot_contain_digits(self):
        assert is_valid_name("Maria")
        assert not is_valid_name("Mar1a")

    def test_email_format(self):
        assert is_valid_email("maria.silva@example.com")
        assert not is_valid_email("maria@")

    def test_adult_boundary(self):
        assert is_adult("2007-03-14", TODAY)
        assert not is_adult("2007-03-15", TODAY)

    def test_birthdate_rejections(self):
        assert not is_adult("2030-01-01", TODAY)
        assert not is_adult("14/03/1990", TODAY)

    def test_password_rules(self):
        assert password_problems("Str0ng!Pass") == []
        assert len(password_problems("weak")) == 4
        assert password_problems("Str0ng!Pass" + "a" * 70) == ["Password cannot exceed 72 bytes"]


class TestValidateRegistration:

    def test_valid_profile(self, registration_data):
        assert validate_registration(registration_data, TODAY) == []

    def test_optional_fields_may_be_empty(self, registration_data):
        registration_data["address2"] = ""
        registration_data["company"] = ""

        assert validate_registration(registration_data, TODAY) == []

    def test_every_problem_is_reported(self, registration_data):
        registration_data.update(
            first_name="Mar1a",
            email="not-an-email",
            phone="123",
            cpf="111.111.111-11",
            city="",
        )

        fields = {e.field for e in validate_registration(registration_data, TODAY)}

        assert fields == {"first_name", "email", "phone", "cpf", "city"}

    def test_missing_fields_are_required(self):
        errors = validate_registration({}, TODAY)

        assert {e.field for e in errors} == {
            "first_name", "last_name", "email", "password", "birthdate", "cpf",
            "phone", "address", "city", "state", "zip_code", "country",
        }
        assert all(e.message == "This field is required" for e in errors)
