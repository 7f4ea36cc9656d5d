import hashlib
import logging
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from qrgen.models import Account, ConversionRecord
from qrgen.rendering import classify

logger = logging.getLogger(__name__)


def text_digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def find_cached_conversion(session: Session, user_id: str, text: str) -> Optional[ConversionRecord]:
    """Newest conversion of exactly `text` for the account, if any."""
    stmt = (
        select(ConversionRecord)
        .where(ConversionRecord.user_id == user_id)
        .where(ConversionRecord.text_hash == text_digest(text))
        .where(ConversionRecord.text == text)
        .order_by(ConversionRecord.created_at.desc())
        .limit(1)
    )
    return session.execute(stmt).scalars().first()


def record_conversion(
    session: Session, account: Account, text: str, qr_code_url: str
) -> Tuple[ConversionRecord, int]:
    """
    Insert the history record and bump the account's usage counter in the
    caller's transaction. The increment is evaluated by the database so
    concurrent requests for different texts cannot lose updates.

    Returns the new record and the updated usage count. Raises
    sqlalchemy.exc.IntegrityError if another request already stored the same
    text for this account.
    """
    record = ConversionRecord(
        user_id=account.id,
        text=text,
        text_hash=text_digest(text),
        qr_code_url=qr_code_url,
        type=classify(text),
    )
    session.add(record)
    session.flush()

    session.execute(
        update(Account)
        .where(Account.id == account.id)
        .values(conversions_used=Account.conversions_used + 1)
        .execution_options(synchronize_session=False)
    )
    conversions_used = session.execute(
        select(Account.conversions_used).where(Account.id == account.id)
    ).scalar_one()
    set_committed_value(account, "conversions_used", conversions_used)
    logger.debug("Stored conversion %s for account %s", record.id, account.id)
    return record, conversions_used
