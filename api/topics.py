def handler(request):
    from api._shared import run_json, get_records, topics_view, ValidationError

    def build():
        level = (request.args.get('level') or '').strip().upper()
        if not level:
            raise ValidationError("Missing required parameter 'level'.")
        result = get_records()
        return {
            'message': f"Topics for level {level} synced.",
            'stale': result.stale,
            'data': topics_view(result.records, level),
        }

    return run_json(request, build, empty=[])
