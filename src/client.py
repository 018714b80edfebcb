import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import requests
from jinja2 import Environment, FileSystemLoader, select_autoescape

from settings import load_settings

logger = logging.getLogger(__name__)

ANALYZE_PATH = "/api/analyze-video"
INVALID_URL_MESSAGE = "Please enter a valid YouTube URL"
GENERIC_ERROR_MESSAGE = "Failed to process video. Please try another video with captions."
PROGRESS_ANALYZING = "🔍 Analyzing video with AI..."
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


class ClipRequestError(Exception):
    """A failed analyze request, carrying the message to show the user."""


def is_valid_youtube_url(url: str) -> bool:
    return "youtube.com/watch" in url or "youtu.be/" in url


class ClipClient:
    """Posts URLs to the analyze endpoint over HTTP."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.endpoint = base_url.rstrip("/") + ANALYZE_PATH
        self.session = session or requests.Session()
        self.timeout = timeout

    def analyze(self, youtube_url: str) -> list[dict]:
        try:
            response = self.session.post(
                self.endpoint,
                json={"youtubeUrl": youtube_url},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Analyze request to {self.endpoint} failed: {e}")
            raise ClipRequestError(GENERIC_ERROR_MESSAGE) from e

        if not isinstance(data, dict):
            raise ClipRequestError(GENERIC_ERROR_MESSAGE)
        if data.get("error"):
            raise ClipRequestError(str(data["error"]))
        return data.get("clips") or []


class ClipForm:
    """View state for the one-field URL form.

    Each ``submit`` starts from a clean slate: previous clips and errors are
    dropped before anything else happens.
    """

    def __init__(self, client: ClipClient):
        self.client = client
        self.url = ""
        self.loading = False
        self.progress = ""
        self.error = ""
        self.clips: list[dict] = []

    def submit(self, url: str) -> bool:
        self.url = url
        self.error = ""
        self.clips = []
        self.progress = ""

        if not is_valid_youtube_url(url):
            self.error = INVALID_URL_MESSAGE
            return False

        self.loading = True
        self.progress = PROGRESS_ANALYZING
        try:
            self.clips = self.client.analyze(url)
            self.progress = f"✅ Complete! Found {len(self.clips)} viral moments"
            return True
        except ClipRequestError as e:
            self.error = str(e) or GENERIC_ERROR_MESSAGE
            self.progress = ""
            return False
        finally:
            self.loading = False

    def render(self) -> str:
        return render_cards(self.clips)


def render_cards(clips: list[dict]) -> str:
    return _templates.get_template("clips.html").render(clips=clips)


def main(argv: Optional[list[str]] = None) -> int:
    settings = load_settings()
    parser = argparse.ArgumentParser(
        prog="topclip-client",
        description="Find viral clip moments in a YouTube video.",
    )
    parser.add_argument("url", help="YouTube video URL")
    parser.add_argument(
        "--base-url",
        default=settings.client_base_url,
        help="Address of the TopClip server (default: %(default)s)",
    )
    parser.add_argument("--output", help="Write the rendered clip cards to this HTML file")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    args = parser.parse_args(argv)

    form = ClipForm(ClipClient(args.base_url, timeout=args.timeout))
    if not form.submit(args.url):
        print(form.error)
        return 1

    print(form.progress)
    for index, clip in enumerate(form.clips, start=1):
        print(
            f"#{index} {clip.get('emoji', '')} {clip.get('badge', '')} | {clip.get('title', '')} "
            f"({clip.get('startTime')} → {clip.get('endTime')}, {clip.get('duration')}s, "
            f"score {clip.get('score')}/10)"
        )
    if args.output:
        Path(args.output).write_text(form.render(), encoding="utf-8")
        print(f"Saved {len(form.clips)} clip cards to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
