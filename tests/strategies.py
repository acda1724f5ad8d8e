"""
Custom Hypothesis strategies for property-based testing.

This module provides custom strategies for generating test data
that conforms to the domain models of the memory importer.
"""

from typing import Any

from hypothesis import strategies as st


# =============================================================================
# Text Strategies
# =============================================================================

# Printable text without line terminators
line_characters = st.characters(
    blacklist_categories=("Cs", "Cc", "Cf"),
    blacklist_characters="\r\n",
)


@st.composite
def csv_line(draw: Any) -> str:
    """Generate one raw CSV line (may be blank, never contains a terminator)."""
    return draw(st.text(alphabet=line_characters, max_size=80))


@st.composite
def csv_content(draw: Any) -> tuple[str, list[str]]:
    """
    Generate CSV file content together with the lines a line reader sees.

    Returns:
        (content, expected_lines)
    """
    lines = draw(st.lists(csv_line(), min_size=1, max_size=20))
    terminator = draw(st.sampled_from(["\n", "\r\n", "\r"]))
    trailing = draw(st.booleans())
    content = terminator.join(lines) + (terminator if trailing else "")
    # Without a final terminator, a blank last line leaves no trace
    if not trailing and lines[-1] == "":
        return content, lines[:-1]
    return content, lines


@st.composite
def sentence(draw: Any) -> str:
    """Generate a simple capitalized sentence ending with a period."""
    words = draw(
        st.lists(
            st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=2, max_size=8),
            min_size=2,
            max_size=8,
        )
    )
    # Fixed last word so the period is never read as an abbreviation
    text = " ".join(words + ["today"])
    return text[0].upper() + text[1:] + "."


# =============================================================================
# File Strategies
# =============================================================================

@st.composite
def valid_filename(draw: Any) -> str:
    """
    Generate valid filename stems.

    Includes alphanumeric characters, underscores and hyphens.
    """
    return draw(st.text(
        min_size=1,
        max_size=30,
        alphabet=st.characters(
            whitelist_categories=("Lu", "Ll", "Nd"),
            whitelist_characters="_-",
        ),
    ).filter(lambda x: len(x.strip("_-")) > 0))


@st.composite
def supported_extension(draw: Any) -> str:
    """Generate a supported extension in random letter case."""
    ext = draw(st.sampled_from(["txt", "pdf", "csv"]))
    cased = "".join(
        c.upper() if draw(st.booleans()) else c for c in ext
    )
    return "." + cased


@st.composite
def unsupported_extension(draw: Any) -> str:
    """Generate common extensions the importer does not handle."""
    return draw(st.sampled_from([".md", ".doc", ".docx", ".json", ".html", ".xlsx", ""]))


# =============================================================================
# Configuration Strategies
# =============================================================================

@st.composite
def api_key(draw: Any) -> str:
    """
    Generate API key-like strings.

    Format: prefix + random alphanumeric characters
    """
    prefix = draw(st.sampled_from(["sk-", "key-", "api-", ""]))
    key_length = draw(st.integers(min_value=20, max_value=64))
    key = draw(st.text(
        min_size=key_length,
        max_size=key_length,
        alphabet=st.characters(
            whitelist_categories=("Lu", "Ll", "Nd"),
        )
    ))
    return prefix + key


@st.composite
def collection_name(draw: Any) -> str:
    """Generate collection names accepted by both backends."""
    first = draw(st.sampled_from("abcdefghijklmnopqrstuvwxyz"))
    rest = draw(st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789-", max_size=30))
    return first + rest.rstrip("-") + "x"


@st.composite
def run_id(draw: Any) -> str:
    """Generate run ID strings (UUID-like or custom)."""
    return draw(st.one_of(
        st.uuids().map(str),
        st.text(min_size=1, max_size=50, alphabet="abcdefghijklmnopqrstuvwxyz0123456789-_"),
    ))


# =============================================================================
# Retry Strategies
# =============================================================================

@st.composite
def retry_parameters(draw: Any) -> tuple[int, float, float, float]:
    """
    Generate valid retry policy parameters.

    Returns:
        (max_attempts, initial_delay, multiplier, max_delay)
    """
    max_attempts = draw(st.integers(min_value=1, max_value=10))
    initial_delay = draw(st.floats(min_value=0.0, max_value=5.0, allow_nan=False))
    multiplier = draw(st.floats(min_value=1.0, max_value=5.0, allow_nan=False))
    max_delay = draw(st.floats(min_value=initial_delay, max_value=60.0, allow_nan=False))
    return max_attempts, initial_delay, multiplier, max_delay
