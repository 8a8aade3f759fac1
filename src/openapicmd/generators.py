"""Fake value generators for filling request fields."""

from __future__ import annotations

import random
import unicodedata
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

FIRST_NAMES = (
    "Ana", "Maria", "Juliana", "Fernanda", "Camila", "Beatriz", "Amanda", "Larissa",
    "Letícia", "Gabriela", "Mariana", "Patrícia", "Renata", "Vanessa", "Bruna",
    "Carlos", "João", "Pedro", "Lucas", "Marcos", "Rafael", "Felipe", "Bruno",
    "Rodrigo", "Eduardo", "Thiago", "Gustavo", "André", "Matheus", "Leonardo",
)

LAST_NAMES = (
    "Silva", "Santos", "Oliveira", "Souza", "Lima", "Pereira", "Costa", "Ferreira",
    "Rodrigues", "Almeida", "Nascimento", "Carvalho", "Fernandes", "Gomes", "Martins",
    "Araújo", "Ribeiro", "Melo", "Barbosa", "Rocha", "Cardoso", "Correia", "Dias",
    "Nunes", "Pinto", "Moraes", "Castro", "Monteiro", "Teixeira", "Vieira",
)

EMAIL_DOMAINS = ("gmail.com", "hotmail.com", "yahoo.com.br", "outlook.com", "uol.com.br")

AREA_CODES = ("11", "21", "31", "41", "51", "61", "71", "81", "85", "91")


def _ascii(text: str) -> str:
    normalized = unicodedata.normalize("NFD", text)
    return "".join(c for c in normalized if not unicodedata.combining(c))


def _check_digit(digits: list[int], weights: list[int]) -> int:
    remainder = sum(d * w for d, w in zip(digits, weights)) % 11
    return 0 if remainder < 2 else 11 - remainder


def cpf_digits() -> list[int]:
    d = [random.randint(0, 9) for _ in range(9)]
    d.append(_check_digit(d, list(range(10, 1, -1))))
    d.append(_check_digit(d, list(range(11, 1, -1))))
    return d


def cpf() -> str:
    s = "".join(map(str, cpf_digits()))
    return f"{s[:3]}.{s[3:6]}.{s[6:9]}-{s[9:]}"


def cpf_raw() -> str:
    return "".join(map(str, cpf_digits()))


def cnpj_digits() -> list[int]:
    d = [random.randint(0, 9) for _ in range(8)] + [0, 0, 0, 1]
    d.append(_check_digit(d, [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]))
    d.append(_check_digit(d, [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]))
    return d


def cnpj() -> str:
    s = "".join(map(str, cnpj_digits()))
    return f"{s[:2]}.{s[2:5]}.{s[5:8]}/{s[8:12]}-{s[12:]}"


def cnpj_raw() -> str:
    return "".join(map(str, cnpj_digits()))


def full_name() -> str:
    return f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}"


def first_name() -> str:
    return random.choice(FIRST_NAMES)


def last_name() -> str:
    return random.choice(LAST_NAMES)


def email() -> str:
    first = _ascii(random.choice(FIRST_NAMES)).lower()
    last = _ascii(random.choice(LAST_NAMES)).lower()
    return f"{first}.{last}{random.randint(1, 999)}@{random.choice(EMAIL_DOMAINS)}"


def phone() -> str:
    return f"({random.choice(AREA_CODES)}) {random.randint(2000, 9999)}-{random.randint(1000, 9999)}"


def mobile() -> str:
    return f"({random.choice(AREA_CODES)}) 9{random.randint(10000, 99999)}-{random.randint(1000, 9999)}"


def postal_code() -> str:
    return f"{random.randint(1000, 99999):05d}-{random.randint(0, 999):03d}"


def uuid4() -> str:
    return str(uuid.uuid4())


def date() -> str:
    return f"{random.randint(2020, 2025)}-{random.randint(1, 12):02d}-{random.randint(1, 28):02d}"


def datetime_iso() -> str:
    return (
        f"{date()}T{random.randint(0, 23):02d}:{random.randint(0, 59):02d}"
        f":{random.randint(0, 59):02d}"
    )


def integer() -> str:
    return str(random.randint(1, 9999))


def decimal() -> str:
    return f"{random.randint(1, 9999) + random.random():.2f}"


@dataclass(frozen=True)
class GeneratorEntry:
    id: str
    label: str
    category: str
    generate: Callable[[], str]


GENERATORS: list[GeneratorEntry] = [
    GeneratorEntry("cpf", "CPF (formatted)", "Person", cpf),
    GeneratorEntry("cpf_raw", "CPF (digits only)", "Person", cpf_raw),
    GeneratorEntry("nome", "Full name", "Person", full_name),
    GeneratorEntry("primeiro_nome", "First name", "Person", first_name),
    GeneratorEntry("sobrenome", "Last name", "Person", last_name),
    GeneratorEntry("email", "E-mail", "Person", email),
    GeneratorEntry("telefone", "Landline phone", "Person", phone),
    GeneratorEntry("celular", "Mobile phone", "Person", mobile),
    GeneratorEntry("cnpj", "CNPJ (formatted)", "Company", cnpj),
    GeneratorEntry("cnpj_raw", "CNPJ (digits only)", "Company", cnpj_raw),
    GeneratorEntry("cep", "Postal code", "Address", postal_code),
    GeneratorEntry("uuid", "UUID", "General", uuid4),
    GeneratorEntry("data", "Date (YYYY-MM-DD)", "General", date),
    GeneratorEntry("datetime", "ISO date/time", "General", datetime_iso),
    GeneratorEntry("inteiro", "Integer", "General", integer),
    GeneratorEntry("decimal", "Decimal", "General", decimal),
]

_BY_ID = {entry.id: entry for entry in GENERATORS}


def get_generator(generator_id: str) -> GeneratorEntry | None:
    return _BY_ID.get(generator_id)


def generate(generator_id: str) -> str | None:
    entry = get_generator(generator_id)
    return entry.generate() if entry else None


def suggest_for_field(
    field_name: str,
    type_: str,
    format_: Optional[str] = None,
    enum_values: Optional[list[str]] = None,
) -> str | None:
    """Suggest a plausible value from the field name and schema hints.

    Returns None when no heuristic matches.
    """
    if enum_values:
        return enum_values[0]

    n = field_name.lower()

    match format_:
        case "date-time":
            return datetime_iso()
        case "date":
            return date()
        case "email":
            return email()
        case "uuid":
            return uuid4()

    if "cpf" in n:
        return cpf_raw() if ("raw" in n or "sem" in n) else cpf()
    if "cnpj" in n:
        return cnpj_raw() if ("raw" in n or "sem" in n) else cnpj()
    if "cep" in n or n == "zip" or "postal" in n:
        return postal_code()

    if "email" in n or "e-mail" in n:
        return email()
    if "celular" in n or "mobile" in n or "whatsapp" in n:
        return mobile()
    if "telefone" in n or "phone" in n or "fone" in n:
        return phone()

    if n in ("nome", "name", "fullname", "full_name") or n.endswith(("_nome", "_name")):
        return full_name()
    if "primeiro" in n or n in ("first_name", "firstname"):
        return first_name()
    if "sobrenome" in n or n in ("last_name", "lastname"):
        return last_name()

    if n.endswith(("_at", "date", "_data")) or n in ("data", "date"):
        if "time" in type_ or "hora" in n or "time" in n:
            return datetime_iso()
        return date()

    if n in ("id", "uuid") or n.endswith(("_id", "_uuid")):
        return uuid4()

    base = type_.replace("?", "").replace("[]", "")
    if base == "integer":
        return integer()
    if base == "number":
        return decimal()
    if base == "boolean":
        return "true"

    return None
