import pytest

from autofan.config import AutofanConfig
from autofan.policy import AggregationMode


@pytest.fixture
def config():
    return AutofanConfig(
        mode=AggregationMode.MEAN,
        interval=0.01,
        min_speed=1500,
        max_speed=5000,
        high_temp=70.0,
        normal_temp=40.0,
        fan="applesmc-isa-0300:Master",
        output="/nonexistent/fan1_output",
        sensors=(),
    )
