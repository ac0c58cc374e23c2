# tests/core/addressing/test_address_roundtrip.py
"""
Testes da forma literal de endereços (parse/format).

Os testes asseguram que:
- `format_address(parse_address(s)) == s` para formas canônicas
- chaves não-identificador são citadas e preservadas
- espaços entre passos são normalizados
- formas inválidas levantam AddressError

Invariantes:
    - O round-trip nunca perde informação
    - A string vazia é o endereço raiz
"""
import pytest

try:
    from pebl_flow.core.addressing import Address, AddressStep, SelectorKind, format_address, parse_address
    from pebl_flow.core.exceptions import AddressError
except Exception as e:  # noqa: BLE001
    Address = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing addressing modules. Implement:\n"
            "- src/pebl_flow/core/addressing/address.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


@pytest.mark.parametrize(
    "text",
    [
        "[0].spm.util.disp.data[1]",
        "matlabbatch[0].cfg_files",
        "a",
        "[3]",
        'options["my key"].x',
        '["1abc"][0]',
        "",
    ],
)
def test_canonical_forms_roundtrip(text):
    """
    Verifica que formas canônicas sobrevivem a parse → format sem alteração.
    """
    _require_imports()

    assert format_address(parse_address(text)) == text


def test_parse_builds_typed_steps():
    """
    Verifica que cada passo carrega o tipo correto (KEY ou INDEX).

    Invariantes:
        - `[n]` vira INDEX com inteiro
        - nomes e chaves citadas viram KEY com str
    """
    _require_imports()

    address = parse_address('[0].spm["a b"][2]')

    assert address.steps == (
        AddressStep(SelectorKind.INDEX, 0),
        AddressStep(SelectorKind.KEY, "spm"),
        AddressStep(SelectorKind.KEY, "a b"),
        AddressStep(SelectorKind.INDEX, 2),
    )
    assert address == Address.of(0, "spm", "a b", 2)


def test_whitespace_is_normalized():
    _require_imports()

    assert format_address(parse_address(" [ 0 ] . spm .data [1] ")) == "[0].spm.data[1]"


def test_formatted_address_parses_back_to_same_address():
    """
    Verifica o round-trip no sentido inverso: Address → texto → Address.

    Cobre chaves com aspas, barras e caracteres não ASCII.
    """
    _require_imports()

    address = Address.of("módulo", 'aspas "duplas"', 0, "back\\slash", "x")

    assert parse_address(format_address(address)) == address


@pytest.mark.parametrize("text", ["a..b", "[x]", "[-1]", "a[0", "1abc", 'a["unterminated]'])
def test_invalid_literal_raises_address_error(text):
    _require_imports()

    with pytest.raises(AddressError):
        parse_address(text)


def test_index_step_rejects_negative_and_non_int():
    _require_imports()

    with pytest.raises(AddressError):
        AddressStep(SelectorKind.INDEX, -1)
    with pytest.raises(AddressError):
        AddressStep(SelectorKind.KEY, 3)


def test_address_navigation_helpers():
    _require_imports()

    address = Address.of(0, "spm", "data")

    assert address.parent == Address.of(0, "spm")
    assert address.last == AddressStep.of("data")
    assert address.startswith(Address.of(0))
    assert not Address().steps
    assert Address().is_root()
    assert str(Address.of(0) + Address.of("a")) == "[0].a"
