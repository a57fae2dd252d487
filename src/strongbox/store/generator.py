"""Random password generation."""

import re
import secrets
import string

from strongbox.exceptions import ValidationError

CHARACTER_CLASSES: dict[str, str] = {
    "alnum": string.ascii_letters + string.digits,
    "alpha": string.ascii_letters,
    "digit": string.digits,
    "lower": string.ascii_lowercase,
    "upper": string.ascii_uppercase,
    "punct": string.punctuation,
    "graph": string.ascii_letters + string.digits + string.punctuation,
    "xdigit": string.hexdigits,
}

CLASS_PATTERN = re.compile(r"\[:([a-z]+):\]")


def expand_character_set(spec: str) -> str:
    """
    Expand a character set string.

    ``[:name:]`` bracket classes are replaced by their members; any other
    character stands for itself. Duplicates are dropped, order is kept.

    Raises:
        ValidationError: If a bracket class is unknown or the set is empty.
    """
    chars: list[str] = []
    pos = 0
    for match in CLASS_PATTERN.finditer(spec):
        chars.extend(spec[pos : match.start()])
        name = match.group(1)
        if name not in CHARACTER_CLASSES:
            raise ValidationError(f"unknown character class: [:{name}:]")
        chars.extend(CHARACTER_CLASSES[name])
        pos = match.end()
    chars.extend(spec[pos:])

    expanded = "".join(dict.fromkeys(chars))
    if not expanded:
        raise ValidationError("character set is empty")
    return expanded


def generate_password(length: int, character_set: str) -> str:
    """
    Generate a random password.

    Args:
        length: Number of characters.
        character_set: Character set string, see expand_character_set.

    Returns:
        The password.
    """
    if length < 1:
        raise ValidationError(f"password length must be positive, got {length}")
    alphabet = expand_character_set(character_set)
    return "".join(secrets.choice(alphabet) for _ in range(length))
