def handler(request):
    from api._shared import run_json, get_records, stats_view

    def build():
        result = get_records()
        return {
            'message': "Overall statistics from the sheet CSV.",
            'stale': result.stale,
            'lastUpdated': result.last_updated,
            'data': stats_view(result.records),
        }

    return run_json(request, build, empty=None)
