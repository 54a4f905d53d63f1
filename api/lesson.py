def handler(request, slug=None):
    """Lesson words for /lesson/<LEVEL>/<TOPIC...>; `slug` is the path after /lesson/."""
    from api._shared import run_json, get_records, parse_lesson_slug, lesson_view

    def build():
        segments = slug if slug is not None else request.args.getlist('slug')
        level, topic = parse_lesson_slug(segments)
        result = get_records()
        return {
            'message': f"Lesson content for {level} - {topic} synced.",
            'stale': result.stale,
            'data': lesson_view(result.records, level, topic),
        }

    return run_json(request, build, empty=[])
