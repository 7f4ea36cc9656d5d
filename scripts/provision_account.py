import argparse
import json

from sqlalchemy import select

from qrgen.accounts import provision_account, rotate_bearer_token
from qrgen.config import Settings, configure_logging
from qrgen.db import create_db_engine, create_session_factory, init_db, session_scope
from qrgen.models import Account, PlanTier


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create an account or rotate its bearer token, then print its credentials."
    )
    parser.add_argument("email", help="Account email.")
    parser.add_argument("--name", default=None, help="Display name for a new account.")
    parser.add_argument(
        "--plan",
        default=PlanTier.FREE.value,
        choices=[tier.value for tier in PlanTier],
        help="Plan for a new account (default: free).",
    )
    parser.add_argument(
        "--rotate",
        action="store_true",
        help="Issue a new bearer token for an existing account.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    engine = create_db_engine(settings)
    init_db(engine)
    sessions = create_session_factory(engine)

    with session_scope(sessions) as session:
        if args.rotate:
            account = session.execute(
                select(Account).where(Account.email == args.email.strip().lower())
            ).scalar_one_or_none()
            if account is None:
                raise SystemExit(f"No account registered for {args.email}")
            rotate_bearer_token(session, account)
        else:
            account = provision_account(session, args.email, name=args.name, plan=args.plan)

        print(
            json.dumps(
                {
                    "id": account.id,
                    "email": account.email,
                    "plan": account.plan,
                    "api_key": account.api_key,
                    "bearer_token": account.bearer_token,
                },
                indent=2,
            )
        )


if __name__ == "__main__":
    main()
