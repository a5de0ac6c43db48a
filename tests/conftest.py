from datetime import datetime, timezone

import pytest

from reply_auto.models import Template

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_template(template_id, keywords, body=None, **kwargs):
    return Template.from_dict(
        {
            "id": template_id,
            "label": kwargs.pop("label", template_id.title()),
            "body": body or f"Reply from {template_id}",
            "keywords": list(keywords),
            **kwargs,
        }
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW
