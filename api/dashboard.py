DASHBOARD_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Vocabulary data viewer</title>
  <style>
    body { font-family: sans-serif; margin: 20px; background-color: #f4f4f9; }
    h1 { color: #9333ea; border-bottom: 2px solid #ddd; padding-bottom: 10px; }
    table { border-collapse: collapse; width: 100%; background: #fff; }
    th, td { border: 1px solid #ddd; padding: 6px 10px; text-align: left; vertical-align: top; }
    .notice { border-left: 5px solid #f59e0b; padding: 8px; background: #fff; }
    .error { border-left: 5px solid #ef4444; padding: 8px; background: #fff; }
  </style>
</head>
<body>
  <h1>Vocabulary data viewer</h1>
  {% if error %}
  <p class="error">{{ error }}</p>
  {% else %}
  {% if stale %}<p class="notice">Refresh failed; showing cached data.</p>{% endif %}
  <p>Last updated: {{ last_updated }} &middot; <a href="?refresh=true">Refresh now</a></p>
  <p>Levels: {{ stats.totalLevels }} &middot; Topics: {{ stats.totalTopics }} &middot; Words: {{ stats.totalWords }}</p>
  <table>
    <tr><th>Level</th><th>Words</th><th>Topics</th><th>Topic breakdown</th></tr>
    {% for lv in levels %}
    <tr>
      <td>{{ lv.level }}</td>
      <td>{{ lv.word_count }}</td>
      <td>{{ lv.topic_count }}</td>
      <td>
        <ul>
        {% for t in topics[lv.level] %}
          <li>{{ t.topic }} ({{ t.word_count }}):
            {% for w in samples.get((lv.level, t.topic), []) %}<code>{{ w.word }}</code>{% if w.mean %} {{ w.mean }}{% endif %}{% if not loop.last %}, {% endif %}{% endfor %}
          </li>
        {% endfor %}
        </ul>
      </td>
    </tr>
    {% endfor %}
  </table>
  {% endif %}
</body>
</html>
"""

SAMPLE_SIZE = 3


def lesson_samples(records, topics_by_level, size=SAMPLE_SIZE):
    """First `size` words of every lesson the topics view lists."""
    from api._shared import lesson_view

    samples = {}
    for level, topics in topics_by_level.items():
        for t in topics:
            samples[(level, t["topic"])] = lesson_view(records, level, t["topic"])[:size]
    return samples


def handler(request):
    from flask import render_template_string
    from api._shared import (
        html_response, get_records, levels_view, topics_view, stats_view, is_truthy, ApiError, logger,
    )

    force = is_truthy(request.args.get('refresh'))
    try:
        result = get_records(force_refresh=force)
    except ApiError as e:
        logger.error("Dashboard could not load data: %s", e.message)
        return html_response(render_template_string(DASHBOARD_TEMPLATE, error=e.message), 200)
    levels = levels_view(result.records)
    topics = {lv["level"]: topics_view(result.records, lv["level"]) for lv in levels}
    html = render_template_string(
        DASHBOARD_TEMPLATE,
        error=None,
        stale=result.stale,
        last_updated=result.last_updated,
        stats=stats_view(result.records),
        levels=levels,
        topics=topics,
        samples=lesson_samples(result.records, topics),
    )
    return html_response(html, 200)
