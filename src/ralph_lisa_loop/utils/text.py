"""Text helpers shared by the protocol and the watcher."""

import re
from datetime import datetime
from typing import Optional, Tuple

from ralph_lisa_loop.models.agent import Tag

TAG_PATTERN = "|".join(tag.value for tag in Tag)
TAG_RE = re.compile(rf"^\[({TAG_PATTERN})\]")

# Strip ALL ANSI/CSI escape sequences plus OSC titles before matching pane text
ANSI_CODE_PATTERN = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")
OSC_PATTERN = re.compile(r"\x1b\][^\x07]*(?:\x07|\x1b\\)")


def normalize_content(raw: str) -> str:
    """Normalize line endings and surrounding whitespace of submitted text."""
    return raw.replace("\r\n", "\n").replace("\r", "\n").strip()


def split_first_line(content: str) -> Tuple[str, str]:
    """Return (first line, remaining body)."""
    first_line, _, body = content.partition("\n")
    return first_line, body.strip("\n")


def extract_tag(content: str) -> Optional[Tag]:
    """Return the tag at the very start of the first line, if any."""
    first_line, _ = split_first_line(content)
    match = TAG_RE.match(first_line)
    return Tag(match.group(1)) if match else None


def extract_summary(content: str) -> str:
    """First line with the leading tag removed."""
    first_line, _ = split_first_line(content)
    return TAG_RE.sub("", first_line, count=1).strip()


def clean_terminal_output(output: str) -> str:
    """Strip control sequences and normalize line endings for parsing."""
    output = OSC_PATTERN.sub("", output)
    output = ANSI_CODE_PATTERN.sub("", output)
    return output.replace("\r", "\n")


def timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")


def time_short(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%H:%M:%S")


def file_stamp(now: Optional[datetime] = None) -> str:
    """Timestamp safe for use in file and directory names."""
    return (now or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
