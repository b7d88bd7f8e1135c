from dataclasses import dataclass
from datetime import datetime
from email import policy
from email.parser import BytesParser
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Optional


@dataclass
class MailMessage:
    subject: str
    timestamp: Optional[datetime]
    body: str
    content_kind: str  # "text/html" or "text/plain"


def _parse_date(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parsedate_to_datetime(str(value))
    except (TypeError, ValueError):
        return None


def read_mail_message(mail_path: Path) -> MailMessage:
    """
    Load one message carrying song lyrics.

    Supports:
      - .eml  (the HTML part is preferred over the plain one)
      - .html / .htm  (rich body, no metadata)
      - .txt  (plain body, no metadata)
    """
    mail_path = Path(mail_path)
    suffix = mail_path.suffix.lower()

    if suffix == ".eml":
        with open(mail_path, "rb") as f:
            msg = BytesParser(policy=policy.default).parse(f)
        part = msg.get_body(preferencelist=("html", "plain"))
        body = part.get_content() if part is not None else ""
        kind = part.get_content_type() if part is not None else "text/plain"
        return MailMessage(
            subject=str(msg.get("Subject", "") or "").strip(),
            timestamp=_parse_date(msg.get("Date")),
            body=body,
            content_kind=kind,
        )

    if suffix in (".html", ".htm"):
        return MailMessage(mail_path.stem, None, mail_path.read_text(encoding="utf-8", errors="ignore"), "text/html")

    if suffix == ".txt":
        return MailMessage(mail_path.stem, None, mail_path.read_text(encoding="utf-8", errors="ignore"), "text/plain")

    raise ValueError("Unsupported mail file. Use .eml, .html, or .txt")


def latest_mail_message(mail_dir: Path) -> Optional[MailMessage]:
    """Newest .eml in a folder by its Date header (file mtime when undated)."""
    candidates = []
    for p in sorted(Path(mail_dir).glob("*.eml")):
        msg = read_mail_message(p)
        when = msg.timestamp.timestamp() if msg.timestamp else p.stat().st_mtime
        candidates.append((when, msg))
    if not candidates:
        return None
    return max(candidates, key=lambda c: c[0])[1]
