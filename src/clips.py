"""Clip extraction pipeline.

Turns a YouTube URL into a list of formatted clip records. The URL is checked,
a transcript is fetched, the model is prompted, its JSON is parsed and
validated, and display fields are derived. When the model output cannot be
used, the fixed demonstration clips are returned instead.
"""

import asyncio
import json
import logging
import math
import re
from typing import Annotated, Callable, Optional, Protocol

from pydantic import BaseModel, Field, RootModel, ValidationError, model_validator

from llm_providers import LLMProvider
from settings import Settings

logger = logging.getLogger(__name__)

VIDEO_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&\s]+)"),
    re.compile(r"youtube\.com/embed/([^&\s]+)"),
]
JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")

CLIP_COUNT = 7

DEMO_TRANSCRIPT = (
    "Welcome to this amazing tutorial where I'll show you incredible productivity hacks. "
    "Today we're diving into 10 life-changing tips that will transform how you work. "
    "First, let's talk about the Pomodoro Technique - this is a game changer for focus "
    "and concentration. The key is working in 25-minute blocks followed by 5-minute breaks. "
    "Many successful entrepreneurs swear by this method. Next, I want to share my morning "
    "routine that boosted my productivity by 300%. I wake up at 5 AM, meditate for 20 "
    "minutes, then journal my goals for the day. The secret ingredient is consistency - "
    "you have to stick with it for at least 30 days to see results. Another powerful tip "
    "is time blocking your calendar. Instead of random tasks throughout the day, block "
    "specific hours for deep work. This simple change doubled my output in just two weeks. "
    "Let me show you exactly how I do this..."
)


class InvalidURLError(ValueError):
    """Raised when no video identifier can be extracted from a URL."""

    def __init__(self, url: str):
        self.url = url
        super().__init__("Invalid YouTube URL")


class ModelTimeoutError(TimeoutError):
    """Raised when a single model call exceeds its time limit."""


class ClipCandidate(BaseModel):
    start_time: int = Field(ge=0)
    end_time: int
    title: str
    description: str
    score: float = Field(ge=0, le=10)
    badge: str
    emoji: str

    @model_validator(mode="after")
    def _check_range(self) -> "ClipCandidate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ClipBatch(RootModel[Annotated[list[ClipCandidate], Field(min_length=1)]]):
    """A model reply: at least one clip, every clip valid."""


class TranscriptProvider(Protocol):
    def get_transcript(self, video_id: str) -> str: ...


class DemoTranscriptProvider:
    """Returns the same demonstration transcript for every video.

    Real transcript retrieval plugs in here.
    """

    def get_transcript(self, video_id: str) -> str:
        return DEMO_TRANSCRIPT


def generate_demo_clips() -> list[ClipCandidate]:
    return [
        ClipCandidate(start_time=15, end_time=45, title="🔥 Pomodoro Technique Explained", description="Game-changing focus method for productivity", score=9.2, badge="Viral", emoji="🔥"),
        ClipCandidate(start_time=60, end_time=95, title="☕ 5 AM Morning Routine That Changed My Life", description="300% productivity boost with this routine", score=8.8, badge="Viral", emoji="☕"),
        ClipCandidate(start_time=120, end_time=165, title="📅 Time Blocking: Double Your Output", description="Simple calendar hack for 2x results", score=8.1, badge="Trending", emoji="📅"),
        ClipCandidate(start_time=180, end_time=225, title="🧠 Deep Work Secrets Revealed", description="How top performers get more done", score=7.6, badge="Trending", emoji="🧠"),
        ClipCandidate(start_time=240, end_time=285, title="✨ 30-Day Challenge for Success", description="Consistency is the secret ingredient", score=7.2, badge="Good", emoji="✨"),
    ]


def extract_video_id(url: str) -> Optional[str]:
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def format_time(seconds: float) -> str:
    """Render seconds as ``M:SS``, flooring both parts."""
    minutes = math.floor(seconds / 60)
    secs = math.floor(seconds % 60)
    return f"{minutes}:{secs:02d}"


def build_prompt(transcript: str) -> str:
    return f"""Analyze this video transcript and identify the TOP {CLIP_COUNT} most viral-worthy moments for short clips (TikTok, Instagram Reels, YouTube Shorts).

Transcript: "{transcript}"

For each clip, provide:
1. start_time (in seconds, integer)
2. end_time (in seconds, must be 30-60 seconds long)
3. title (catchy, with emoji, max 60 chars)
4. description (why it's viral, max 100 chars)
5. score (0-10 engagement score)
6. badge (Viral/Trending/Good based on score)
7. emoji (relevant emoji)

Return ONLY valid JSON array, no markdown:
[{{"start_time":30,"end_time":60,"title":"...","description":"...","score":8.5,"badge":"Viral","emoji":"🔥"}}]"""


def parse_model_output(
    text: str, fallback: Callable[[], list[ClipCandidate]] = generate_demo_clips
) -> list[ClipCandidate]:
    """Parse the first JSON array in ``text`` into validated clip candidates.

    Unusable output never raises: missing arrays, bad JSON and anything
    ``ClipBatch`` rejects, including an empty array, return ``fallback()``.
    """
    match = JSON_ARRAY_PATTERN.search(text or "")
    if not match:
        logger.warning("Model output contained no JSON array, using demo clips")
        return fallback()

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning(f"Model output was not valid JSON ({e.msg}), using demo clips")
        return fallback()

    try:
        return ClipBatch.model_validate(payload).root
    except ValidationError as e:
        logger.warning(
            f"Model output failed clip validation ({e.error_count()} errors), using demo clips"
        )
        return fallback()


def format_clips(candidates: list[ClipCandidate]) -> list[dict]:
    formatted = []
    for clip in candidates:
        record = clip.model_dump()
        record["duration"] = clip.end_time - clip.start_time
        record["startTime"] = format_time(clip.start_time)
        record["endTime"] = format_time(clip.end_time)
        formatted.append(record)
    return formatted


class ClipAnalyzer:
    """Runs the full URL-to-clips pipeline against an injected model provider."""

    def __init__(
        self,
        provider: LLMProvider,
        settings: Optional[Settings] = None,
        transcripts: Optional[TranscriptProvider] = None,
        fallback: Callable[[], list[ClipCandidate]] = generate_demo_clips,
    ):
        self.provider = provider
        self.settings = settings or Settings()
        self.transcripts = transcripts or DemoTranscriptProvider()
        self.fallback = fallback
        self._model_slots = asyncio.Semaphore(self.settings.max_concurrent_model_calls)

    async def analyze(self, youtube_url: str) -> list[dict]:
        video_id = extract_video_id(youtube_url) if isinstance(youtube_url, str) else None
        if not video_id:
            raise InvalidURLError(str(youtube_url))

        transcript = self.transcripts.get_transcript(video_id)
        text = await self.generate_with_retries(build_prompt(transcript), video_id)
        candidates = parse_model_output(text, self.fallback)
        logger.info(f"Returning {len(candidates)} clips for {video_id}")
        return format_clips(candidates)

    async def generate_with_retries(self, prompt: str, video_id: str) -> str:
        """
        Calls the model with a per-attempt timeout and a bounded number of attempts.

        Args:
            prompt (str): The full prompt text.
            video_id (str): Used for log context only.

        Returns:
            str: The completion text of the first successful attempt.

        Raises:
            ModelTimeoutError: If the last attempt timed out.
            Exception: Whatever the provider raised on the last attempt.
        """
        total_attempts = max(1, self.settings.model_max_attempts)
        timeout = self.settings.model_timeout_seconds
        loop = asyncio.get_running_loop()

        for attempt in range(1, total_attempts + 1):
            await self._model_slots.acquire()
            logger.info(f"Attempt {attempt}/{total_attempts} to generate clips for {video_id}")
            call = loop.run_in_executor(None, self.provider.generate_content, prompt)
            # A timed out call keeps its worker thread, so it keeps its slot too.
            call.add_done_callback(self._release_slot)
            try:
                return await asyncio.wait_for(asyncio.shield(call), timeout=timeout)
            except asyncio.TimeoutError:
                error = ModelTimeoutError(f"Model call timed out after {timeout:g}s")
            except Exception as e:
                error = e

            if attempt == total_attempts:
                logger.error(
                    f"Model call for {video_id} failed after {total_attempts} attempts: {error}"
                )
                raise error

            logger.warning(
                f"Attempt {attempt}/{total_attempts} failed for {video_id}: {error}"
            )
            delay = self.settings.model_retry_delay_seconds
            logger.info(f"Retrying in {delay} seconds...")
            await asyncio.sleep(delay)

    def _release_slot(self, call: asyncio.Future) -> None:
        if not call.cancelled():
            # Abandoned attempts still fail quietly.
            call.exception()
        self._model_slots.release()
