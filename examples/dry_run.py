"""Example showing how configuration layers resolve into a run plan.

Nothing is downloaded or executed; this prints the steps ``infra-bootstrap
run`` would take for each mode.
"""

from infra_bootstrap.config import load_config
from infra_bootstrap.fetch.codeload import CodeloadFetcher
from infra_bootstrap.pipeline import describe_plan


def main():
    for mode in ("plan", "apply", "destroy", "check"):
        config = load_config(overrides={"mode": mode, "environment": "dev"})
        url = CodeloadFetcher(host=config.source.host).build_url(
            config.source.repo, config.source.ref
        )

        print(f"\n[{mode}]")
        for phase, detail in describe_plan(config, url):
            print(f"  {phase:<14} {detail}")


if __name__ == "__main__":
    main()
