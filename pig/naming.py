"""Case conversion filters for templates.

OpenAPI names come in every style (`petId`, `Pet-Store`, `pet_store`,
`HTTPStatus`); templates usually need one. Registered as Jinja2 filters:

    {{ "petStoreID" | snake_case }}          -> pet_store_id
    {{ "pet_store" | camel_case }}           -> petStore
    {{ "pet-store" | pascal_case }}          -> PetStore
    {{ "PetStore" | kebab_case }}            -> pet-store
    {{ "petStore" | screaming_snake_case }}  -> PET_STORE
    {{ "2xx response" | identifier }}        -> _2xx_response
"""

from __future__ import annotations

import keyword
import re


def _camel_to_snake(name: str) -> str:
    """Convert camelCase or PascalCase to snake_case."""
    s1 = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    return re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s1).lower()


def _words(name: str) -> list[str]:
    """Split a name into lowercase words."""
    name = _camel_to_snake(str(name))
    return [word for word in re.split(r"[^a-z0-9]+", name) if word]


def snake_case(name: str) -> str:
    return "_".join(_words(name))


def screaming_snake_case(name: str) -> str:
    return snake_case(name).upper()


def kebab_case(name: str) -> str:
    return "-".join(_words(name))


def pascal_case(name: str) -> str:
    return "".join(word.capitalize() for word in _words(name))


def camel_case(name: str) -> str:
    words = _words(name)
    if not words:
        return ""
    return words[0] + "".join(word.capitalize() for word in words[1:])


def identifier(name: str) -> str:
    """Sanitize a name for use as a Python identifier."""
    name = snake_case(name) or "_"
    if name[0].isdigit() or keyword.iskeyword(name):
        name = f"_{name}"
    return name


FILTERS = {
    "snake_case": snake_case,
    "screaming_snake_case": screaming_snake_case,
    "kebab_case": kebab_case,
    "pascal_case": pascal_case,
    "camel_case": camel_case,
    "identifier": identifier,
}
