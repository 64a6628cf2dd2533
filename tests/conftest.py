import matplotlib

matplotlib.use("Agg")

import pytest

from automation.context import SynthesisContext


@pytest.fixture
def ctx():
    return SynthesisContext()


@pytest.fixture
def manager(ctx):
    return ctx.generators


@pytest.fixture
def clock(ctx):
    return ctx.clock
