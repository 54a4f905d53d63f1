def handler(request):
    # Health check; reports cache state without fetching the sheet
    from api._shared import json_response, cache, CORS_HEADERS

    if request.method == "OPTIONS":
        return ('', 200, dict(CORS_HEADERS))
    return json_response({"ok": True, "cache": cache.summary()}, 200)
