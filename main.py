from datetime import timedelta

from rich.pretty import pprint

from helmsman import *

__prog__ = "crane"

config = Config(shell=True, colorful=True, fancy=True)

crane = config.command("crane", (
    "NAME\n"
    "        crane\n\n"
    "SYNOPSIS\n"
    "        crane | [lift|drop] | -[flag] | -[flag] [opt]\n\n"
))
lift = config.command("lift", "        lift a load\n\n")
drop = config.command("drop", "        drop a load\n\n")

retries = Ref(int)


@option("weight", Type.FLOAT64, 1.0, "load `tons`", lift | drop)
def weight(value):
    if value <= 0:
        raise ValueError("weight must be positive")
    return value


if __name__ == '__main__':
    config.compose(
        weight,
        Option("v", Type.BOOL, False, "verbose output", crane | lift | drop),
        Option("timeout", Type.DURATION, timedelta(seconds=30), "give up after\n`duration`", lift | drop),
        Option("retries", Type.INT_VAR, 3, "attempts before failing", lift, var=retries),
    )
    if config.value_bool("v"):
        verbose(2)
    if config.is_running(lift | drop):
        pprint({
            "running": config.running,
            "weight": config.value_float64("weight"),
            "timeout": config.value_duration("timeout"),
            "retries": retries.value,
            "args": config.args,
        })
    else:
        config.usage()
