import enum


class DeploymentEnvironment(enum.Enum):
    """Selects the `config/env.d/<env>/` directory layered over the base configuration."""

    Production = "production"
    Staging = "staging"
    Development = "development"
    Test = "test"
    # base configuration only
    Local = "local"


class OverdueHandling(enum.Enum):
    """What happens to an open attempt once its deadline has passed."""

    AutoSubmit = "autosubmit"
    GracePeriod = "graceperiod"
    AutoAbandon = "autoabandon"


class GradingStrategy(enum.Enum):
    """How several finished attempts are combined into one grade."""

    Highest = "highest"
    Average = "average"
    First = "first"
    Last = "last"
