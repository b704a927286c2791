from uuid import UUID, uuid4

import pytest

from enrollment_api.domain.exceptions import InvalidIdentifier
from enrollment_api.domain.identifiers import (
    MAX_NUMERIC_ID,
    normalize_business_id,
    normalize_customer_id,
    normalize_invitation_id,
    normalize_program_id,
)


@pytest.mark.parametrize("raw", [42, "42", " 42 ", "+42", "0042", "0" * 5000 + "42", 42.0])
def test_customer_id_accepts_numeric_shapes(raw) -> None:
    assert normalize_customer_id(raw) == 42


def test_string_and_integer_forms_normalise_to_the_same_value() -> None:
    assert normalize_customer_id("7") == normalize_customer_id(7)
    assert type(normalize_customer_id("7")) is int


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "abc",
        "4.2",
        "-3",
        "0",
        "000",
        0,
        -1,
        4.5,
        float("nan"),
        True,
        None,
        [1],
        MAX_NUMERIC_ID + 1,
        str(MAX_NUMERIC_ID + 1),
        "9" * 5000,
        "+" + "9" * 5000,
    ],
)
def test_customer_id_rejects_malformed_values(raw) -> None:
    with pytest.raises(InvalidIdentifier) as excinfo:
        normalize_customer_id(raw)

    assert excinfo.value.field == "customer_id"
    assert excinfo.value.reason_code == "invalid_identifier"
    assert excinfo.value.as_detail()["field"] == "customer_id"


def test_business_id_reports_its_own_field() -> None:
    with pytest.raises(InvalidIdentifier) as excinfo:
        normalize_business_id("not-a-number")

    assert excinfo.value.field == "business_id"


def test_program_id_accepts_uuid_strings_in_any_case() -> None:
    program_id = uuid4()

    assert normalize_program_id(program_id) == program_id
    assert normalize_program_id(str(program_id).upper()) == program_id
    assert normalize_program_id(f"  {program_id}  ") == program_id
    assert normalize_program_id(program_id.hex) == program_id
    assert isinstance(normalize_program_id(str(program_id)), UUID)


@pytest.mark.parametrize("raw", ["", "  ", "program-1", 12, None])
def test_program_id_rejects_non_uuid_values(raw) -> None:
    with pytest.raises(InvalidIdentifier) as excinfo:
        normalize_program_id(raw)

    assert excinfo.value.field == "program_id"


def test_invitation_id_rejects_garbage() -> None:
    with pytest.raises(InvalidIdentifier):
        normalize_invitation_id("1234")
