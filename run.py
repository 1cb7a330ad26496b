from __future__ import annotations

import logging
import os

from booking import create_app


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    flask_app = create_app()
    config = flask_app.config

    logging.getLogger(__name__).info(
        "Booking API: hold ttl %ss, sweep every %ss, sweeper %s",
        config["HOLD_TTL_SECONDS"],
        config["SWEEP_INTERVAL_SECONDS"],
        "on" if config["SWEEPER_ENABLED"] else "off",
    )
    for rule in sorted(flask_app.url_map.iter_rules(), key=lambda r: r.rule):
        print(f"{','.join(sorted(rule.methods - {'HEAD', 'OPTIONS'})):<12} {rule.rule}")

    # Holds live in process memory; the reloader would fork a second ledger.
    flask_app.run(
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 5000)),
        debug=os.environ.get("FLASK_DEBUG", "0") in {"1", "true", "True"},
        use_reloader=False,
    )


if __name__ == "__main__":
    main()
