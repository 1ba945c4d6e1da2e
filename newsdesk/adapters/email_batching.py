"""
Helpers shared by the bulk email transports.

Chunking keeps every message to a bounded number of Bcc recipients and the
footer gives every newsletter a way out.
"""

from __future__ import annotations

from collections.abc import Iterator

UNSUBSCRIBE_FOOTER = (
    '<hr style="margin-top: 30px; border: none; border-top: 1px solid #eee;">'
    '<p style="font-size: 12px; color: #777;">'
    "You are receiving this email because you subscribed to the {site_name} newsletter. "
    'To stop receiving these emails, <a href="{unsubscribe_url}" style="color: #555;">'
    "unsubscribe here</a>."
    "</p>"
)


def chunk_recipients(recipients: list[str], batch_size: int) -> Iterator[list[str]]:
    """Yield consecutive slices of at most batch_size recipients."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    for start in range(0, len(recipients), batch_size):
        yield recipients[start : start + batch_size]


def with_unsubscribe_footer(body_html: str, unsubscribe_url: str, site_name: str) -> str:
    """Append the unsubscribe footer to a newsletter body."""
    footer = UNSUBSCRIBE_FOOTER.format(site_name=site_name, unsubscribe_url=unsubscribe_url)
    return f"{body_html}{footer}"
