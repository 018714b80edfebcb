import pytest

from app import ANALYZE_PATH, create_app
from clips import ClipAnalyzer, format_clips, generate_demo_clips
from conftest import FakeProvider
from settings import Settings


@pytest.fixture
def provider(model_reply):
    return FakeProvider(model_reply)


@pytest.fixture
def client(settings, provider):
    app = create_app(settings=settings, analyzer=ClipAnalyzer(provider, settings))
    return app.test_client()


async def test_options_returns_preflight_headers(client):
    response = await client.options(ANALYZE_PATH)

    assert response.status_code == 200
    assert await response.get_data(as_text=True) == ""
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"
    assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"


@pytest.mark.parametrize("method", ["get", "put", "delete", "patch"])
async def test_other_methods_are_not_allowed(client, method):
    response = await getattr(client, method)(ANALYZE_PATH)

    assert response.status_code == 405
    assert await response.get_json() == {"error": "Method Not Allowed"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"


async def test_unregistered_method_gets_json_405(client):
    response = await client.open(ANALYZE_PATH, method="TRACE")

    assert response.status_code == 405
    assert await response.get_json() == {"error": "Method Not Allowed"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"


async def test_missing_url_is_bad_request(client, provider):
    response = await client.post(ANALYZE_PATH, json={})

    assert response.status_code == 400
    assert await response.get_json() == {"error": "YouTube URL is required"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert provider.prompts == []


async def test_unrecognized_url_is_bad_request(client, provider):
    response = await client.post(ANALYZE_PATH, json={"youtubeUrl": "not-a-url"})

    assert response.status_code == 400
    assert await response.get_json() == {"error": "Invalid YouTube URL"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert provider.prompts == []


@pytest.mark.parametrize("body", ["not json", "[1, 2]", ""])
async def test_non_object_body_is_bad_request(client, body):
    response = await client.post(
        ANALYZE_PATH, data=body, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert await response.get_json() == {"error": "Invalid JSON payload"}


async def test_valid_url_returns_formatted_clips(client):
    response = await client.post(ANALYZE_PATH, json={"youtubeUrl": "https://youtu.be/abc123"})

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    data = await response.get_json()
    assert [clip["title"] for clip in data["clips"]] == ["🚀 Launch Day", "😂 Blooper"]
    assert data["clips"][0]["duration"] == 40
    assert data["clips"][0]["startTime"] == "0:10"
    assert data["clips"][0]["endTime"] == "0:50"


async def test_malformed_model_reply_never_fails_the_request(settings):
    analyzer = ClipAnalyzer(FakeProvider("```json\n{oops\n```"), settings)
    client = create_app(settings=settings, analyzer=analyzer).test_client()

    response = await client.post(ANALYZE_PATH, json={"youtubeUrl": "https://youtu.be/abc123"})

    assert response.status_code == 200
    assert (await response.get_json())["clips"] == format_clips(generate_demo_clips())


async def test_model_failure_is_server_error_with_message(settings):
    analyzer = ClipAnalyzer(FakeProvider(RuntimeError("quota exceeded")), settings)
    client = create_app(settings=settings, analyzer=analyzer).test_client()

    response = await client.post(ANALYZE_PATH, json={"youtubeUrl": "https://youtu.be/abc123"})

    assert response.status_code == 500
    assert await response.get_json() == {"error": "quota exceeded"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"


async def test_error_without_message_uses_default(settings):
    analyzer = ClipAnalyzer(FakeProvider(RuntimeError()), settings)
    client = create_app(settings=settings, analyzer=analyzer).test_client()

    response = await client.post(ANALYZE_PATH, json={"youtubeUrl": "https://youtu.be/abc123"})

    assert response.status_code == 500
    assert await response.get_json() == {"error": "Failed to analyze video"}


async def test_missing_api_key_surfaces_on_first_post():
    client = create_app(settings=Settings(llm_provider="gemini", gemini_api_key=None)).test_client()

    preflight = await client.options(ANALYZE_PATH)
    response = await client.post(ANALYZE_PATH, json={"youtubeUrl": "https://youtu.be/abc123"})

    assert preflight.status_code == 200
    assert response.status_code == 500
    assert await response.get_json() == {"error": "GEMINI_API_KEY environment variable not set."}


async def test_index_page_posts_to_analyze_endpoint(client):
    response = await client.get("/")

    assert response.status_code == 200
    page = await response.get_data(as_text=True)
    assert 'id="clip-form"' in page
    assert ANALYZE_PATH in page
