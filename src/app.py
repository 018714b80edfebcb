import json
import logging
import sys
from typing import Optional

from quart import Quart, request, jsonify, render_template

from clips import ClipAnalyzer, InvalidURLError
from llm_providers import get_llm_provider
from settings import Settings, load_settings

# Configure logging
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
handler = logging.StreamHandler(sys.stdout)
formatter = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s"
)
handler.setFormatter(formatter)
logger.addHandler(handler)
# The pipeline and provider modules log through the same handler.
for name in ("clips", "llm_providers"):
    logging.getLogger(name).setLevel(logging.INFO)
    logging.getLogger(name).addHandler(handler)

ANALYZE_PATH = "/api/analyze-video"
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}
PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}
DEFAULT_ERROR_MESSAGE = "Failed to analyze video"


def create_app(
    settings: Optional[Settings] = None, analyzer: Optional[ClipAnalyzer] = None
) -> Quart:
    """Build the Quart app. The analyzer is created on first use when not given."""
    app = Quart(__name__)
    app.config["TOPCLIP_SETTINGS"] = settings or load_settings()
    app.config["TOPCLIP_ANALYZER"] = analyzer

    def get_analyzer() -> ClipAnalyzer:
        if app.config["TOPCLIP_ANALYZER"] is None:
            current = app.config["TOPCLIP_SETTINGS"]
            app.config["TOPCLIP_ANALYZER"] = ClipAnalyzer(get_llm_provider(current), current)
        return app.config["TOPCLIP_ANALYZER"]

    @app.errorhandler(405)
    async def method_not_allowed(error):
        # Methods the route never registered are answered here.
        return jsonify({"error": "Method Not Allowed"}), 405, CORS_HEADERS

    @app.route("/")
    async def index():
        return await render_template("index.html", analyze_path=ANALYZE_PATH)

    @app.route(ANALYZE_PATH, methods=ALL_METHODS)
    async def analyze_video():
        if request.method == "OPTIONS":
            return "", 200, PREFLIGHT_HEADERS

        if request.method != "POST":
            return jsonify({"error": "Method Not Allowed"}), 405, CORS_HEADERS

        try:
            raw_body = await request.get_data(as_text=True)
            try:
                data = json.loads(raw_body) if raw_body else None
            except json.JSONDecodeError:
                data = None
            if not isinstance(data, dict):
                return jsonify({"error": "Invalid JSON payload"}), 400, CORS_HEADERS

            youtube_url = data.get("youtubeUrl")
            if not youtube_url:
                return jsonify({"error": "YouTube URL is required"}), 400, CORS_HEADERS

            logger.info(f"Analyzing {youtube_url}")
            clips = await get_analyzer().analyze(youtube_url)
            return jsonify({"clips": clips}), 200, CORS_HEADERS

        except InvalidURLError as e:
            logger.info(f"Rejected URL: {e.url}")
            return jsonify({"error": str(e)}), 400, CORS_HEADERS
        except Exception as e:
            logger.error(f"Error in {ANALYZE_PATH}: {str(e)}")
            message = str(e) or DEFAULT_ERROR_MESSAGE
            return jsonify({"error": message}), 500, CORS_HEADERS

    return app


app = create_app()


if __name__ == "__main__":
    logger.info("Starting Quart app...")
    app.run(host="0.0.0.0", port=5000)
