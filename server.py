import os
import logging

from flask import Flask, request

from api import dashboard, lesson, levels, ping, stats, topics

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# Vercel: export a WSGI Flask app named `app`; locally `python server.py`
app = Flask(__name__)

METHODS = ["GET", "OPTIONS"]


@app.route("/levels", methods=METHODS)
@app.route("/api/vocabulary/list-levels", methods=METHODS)
def api_levels():
    return levels.handler(request)


@app.route("/topics", methods=METHODS)
@app.route("/api/vocabulary/list-topics", methods=METHODS)
def api_topics():
    return topics.handler(request)


@app.route("/lesson", defaults={"slug": ""}, methods=METHODS)
@app.route("/lesson/<path:slug>", methods=METHODS)
@app.route("/api/lesson", defaults={"slug": ""}, methods=METHODS)
@app.route("/api/lesson/<path:slug>", methods=METHODS)
def api_lesson(slug):
    return lesson.handler(request, slug)


@app.route("/stats", methods=METHODS)
@app.route("/api/stats", methods=METHODS)
def api_stats():
    return stats.handler(request)


@app.get("/dashboard")
@app.get("/api/data-viewer")
def api_dashboard():
    return dashboard.handler(request)


@app.route("/health", methods=METHODS)
@app.route("/api/health", methods=METHODS)
def api_health():
    return ping.handler(request)


def main() -> None:
    port = int(os.environ.get("PORT", "8000"))
    app.run(host="0.0.0.0", port=port, debug=False)


if __name__ == "__main__":
    main()
