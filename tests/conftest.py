# tests/conftest.py
"""Shared test fixtures.

Graph Fixtures:
- scenario_graph: app <- link <- phony objs <- {obj1.o <- cc1, obj2.o <- cc2}
- diamond_graph: two compiles sharing one generated header

Builders and document helpers live in tests.fixtures.graphs so test modules
can import them directly.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os

import pytest
from hypothesis import Phase, Verbosity, settings

from buildgraph.graph import BuildGraph
from tests.fixtures.graphs import build_diamond_graph, build_scenario_graph

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


@pytest.fixture
def scenario_graph() -> BuildGraph:
    return build_scenario_graph()


@pytest.fixture
def diamond_graph() -> BuildGraph:
    return build_diamond_graph()
