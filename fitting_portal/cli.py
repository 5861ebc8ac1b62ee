import argparse
import logging
import sys

from fitting_portal.db import SessionLocal, engine
from fitting_portal.models import Base
from fitting_portal.services.size_recommendation import seed_default_size_charts
from fitting_portal.services.webhook_dispatcher import create_dispatcher, retry_failed_webhooks
from fitting_portal.security import sanitize_email
from fitting_portal.settings import settings
from fitting_portal.shopify_client import ShopifyError, ShopifyNotConfiguredError, create_shopify_client
from fitting_portal.shopify_sync import sync_customer_orders

# 로그 설정
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger("fitting_portal.cli")


def init_db_command(args) -> int:
    Base.metadata.create_all(bind=engine)
    logger.info("[CLI] Database tables created")
    return 0


def seed_size_charts_command(args) -> int:
    with SessionLocal() as session:
        with session.begin():
            created = seed_default_size_charts(session)
    logger.info(f"[CLI] Seeded {created} size charts")
    return 0


def retry_webhooks_command(args) -> int:
    dispatcher = create_dispatcher()
    if not dispatcher.enabled:
        logger.error("[CLI] WEBHOOK_URL is not configured")
        return 1

    with SessionLocal() as session:
        result = retry_failed_webhooks(session, dispatcher, limit=args.limit)
    logger.info(
        f"[CLI] Webhook retry finished: processed={result['processed']} "
        f"succeeded={result['succeeded']} failed={result['failed']}"
    )
    return 0


def sync_orders_command(args) -> int:
    """Shopify 주문을 고객 이메일 기준으로 로컬 DB에 동기화"""
    email = sanitize_email(args.email)
    if email is None:
        logger.error(f"[CLI] Invalid email: {args.email}")
        return 1

    client = create_shopify_client()
    if client is None:
        raise ShopifyNotConfiguredError("Shopify integration not configured")

    with SessionLocal() as session:
        with session.begin():
            count = sync_customer_orders(session, client, email)
    logger.info(f"[CLI] Synced {count} orders for {email}")
    return 0


COMMANDS = {
    "init-db": init_db_command,
    "seed-size-charts": seed_size_charts_command,
    "retry-webhooks": retry_webhooks_command,
    "sync-orders": sync_orders_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fitting Portal Operations CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("seed-size-charts", help="Insert default size charts if missing")

    retry_parser = subparsers.add_parser("retry-webhooks", help="Resend undelivered photo webhooks")
    retry_parser.add_argument("--limit", type=int, default=10)

    sync_parser = subparsers.add_parser("sync-orders", help="Sync Shopify orders for a customer")
    sync_parser.add_argument("--email", required=True)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except ShopifyError as e:
        logger.error(f"[CLI] Shopify error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"[CLI] Critical error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
