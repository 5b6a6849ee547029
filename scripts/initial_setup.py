"""Prepare the database and check the alert rule configuration."""
from pathlib import Path

from sqlalchemy.engine import make_url

from loadwatch.config import get_settings
from loadwatch.database import run_migrations
from loadwatch.logging_config import configure_logging
from loadwatch.services.alert_rules import load_rule_config


def main() -> None:
    configure_logging()
    settings = get_settings()

    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    run_migrations()
    print("Database initialised at", settings.database_url)

    rules = load_rule_config(settings.alert_rules_path)
    enabled = [rule for rule in rules if rule.enabled]
    print(f"Alert rules: {len(enabled)} enabled of {len(rules)}")
    for rule in rules:
        flag = "on " if rule.enabled else "off"
        print(f"  [{flag}] {rule.id}: {rule.type.value} {rule.condition.value} {rule.threshold:g}")


if __name__ == "__main__":
    main()
