"""Shared fixtures: a temporary SQLite store and a scripted model gateway."""

import json
from datetime import datetime

import pytest

from autograde.libs.submission_store import SubmissionStore
from autograde.tools.auto_grading.gateway import Completion
from autograde.tools.auto_grading.models import GradingPolicy, Task


class FakeGateway:
    """Returns scripted completions in order; exceptions in the script are raised."""

    def __init__(self, responses=None, model="fake/grader-1"):
        self.responses = list(responses or [])
        self.model = model
        self.calls = []

    async def complete(self, system_prompt, user_prompt, *, model=None, settings=None):
        self.calls.append({
            'system_prompt': system_prompt,
            'user_prompt': user_prompt,
            'model': model,
            'settings': settings,
        })
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return Completion(text=response, model=model or self.model, total_tokens=321)


@pytest.fixture
def make_gateway():
    """Factory for scripted gateways: make_gateway(["**Yekun bal: 80/100**", ...])."""
    return FakeGateway


@pytest.fixture
def sample_config():
    """Create sample configuration."""
    return {
        'llm': {
            'api_key': 'test-key',
            'model': 'z-ai/glm-5',
            'base_url': 'https://openrouter.ai/api/v1',
            'model_settings': {'temperature': 0.3, 'max_tokens': 4096, 'top_p': 0.9},
        },
        'grading': {
            'bonus_threshold': 70,
            'bonus_points': 5,
            'max_score': 100,
            'batch_size': 3,
        },
    }


@pytest.fixture
def policy():
    return GradingPolicy()


@pytest.fixture
def store(tmp_path):
    """Empty store with schema, one task and two students."""
    store = SubmissionStore(f"sqlite:///{tmp_path / 'autograde.db'}")
    store.create_schema()
    store.add_task(Task(id="task-1", title="Python List Operations",
                        instructions="Write average/sort/min-max helpers.", max_score=100))
    store.add_student("student-1", "Aysel Məmmədova")
    store.add_student("student-2", "Rəşad Əliyev")
    return store


@pytest.fixture
def base_time():
    return datetime(2025, 1, 10, 9, 0, 0)


@pytest.fixture
def notebook_json():
    return json.dumps({
        "cells": [
            {"cell_type": "markdown", "source": ["# Tapşırıq 1\n", "Average"], "metadata": {}},
            {
                "cell_type": "code",
                "source": ["nums = [1, 2, 3]\n", "print(sum(nums) / len(nums))"],
                "outputs": [{"output_type": "stream", "text": ["2.0\n"]}],
                "execution_count": 1,
            },
            {"cell_type": "code", "source": "print(max(nums))", "outputs": [], "execution_count": None},
        ],
        "metadata": {"kernelspec": {"name": "python3"}},
        "nbformat": 4,
        "nbformat_minor": 5,
    })
