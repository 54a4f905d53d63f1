def handler(request):
    from api._shared import run_json, get_records, levels_view, is_truthy

    def build():
        result = get_records()
        include_topics = is_truthy(request.args.get('include_topics'))
        return {
            'message': "Levels synced from the Google Sheet.",
            'stale': result.stale,
            'data': levels_view(result.records, include_topics=include_topics),
        }

    return run_json(request, build, empty=[])
