"""Tests for gateway deposits and the payment status callback."""
import hashlib
import hmac
import uuid

import pytest

from arena.models.base import TransactionStatus, WalletStatus
from arena.services.payment_service import (
    PaymentService,
    generate_order_id,
    verify_webhook_signature,
)
from arena.services.wallet_service import WalletService
from arena.utils.exceptions import (
    ArenaValidationError,
    PaymentAmountMismatchError,
    TransactionNotFoundError,
    WalletAccessDeniedError,
    WalletInactiveError,
)


async def _pending_deposit(db_session, wallet_factory, amount: int = 500):
    wallet = await wallet_factory(initial_balance=0)
    wallet_id, user_id = wallet.wallet_id, wallet.user_id
    transaction = await PaymentService(db_session).initiate_deposit(wallet_id, user_id, amount)
    return wallet_id, transaction.reference_id


class TestInitiateDeposit:

    async def test_deposit_is_pending(self, db_session, wallet_factory):
        wallet_id, order_id = await _pending_deposit(db_session, wallet_factory)

        transaction = await PaymentService(db_session).get_payment_status(order_id)
        assert transaction.status == TransactionStatus.PENDING.value
        assert transaction.payment_method == "gateway"
        assert order_id.startswith("WALLET_")
        assert (await WalletService(db_session).get_wallet(wallet_id)).balance == 0

    @pytest.mark.parametrize("amount", [0, 50001])
    async def test_amount_limits(self, db_session, wallet_factory, amount):
        wallet = await wallet_factory(initial_balance=0)

        with pytest.raises(ArenaValidationError):
            await PaymentService(db_session).initiate_deposit(wallet.wallet_id, wallet.user_id, amount)

    async def test_foreign_wallet_rejected(self, db_session, wallet_factory):
        wallet = await wallet_factory(initial_balance=0)

        with pytest.raises(WalletAccessDeniedError):
            await PaymentService(db_session).initiate_deposit(wallet.wallet_id, uuid.uuid4(), 100)

    def test_order_ids_are_unique(self):
        assert len({generate_order_id() for _ in range(50)}) == 50


class TestApplyPaymentStatus:

    async def test_paid_credits_once(self, db_session, wallet_factory):
        wallet_id, order_id = await _pending_deposit(db_session, wallet_factory, amount=500)
        payment_service = PaymentService(db_session)

        transaction = await payment_service.apply_payment_status(order_id, "PAID", amount=500)
        assert transaction.status == TransactionStatus.SUCCESS.value
        assert transaction.balance_after == 500

        again = await payment_service.apply_payment_status(order_id, "PAID", amount=500)
        assert again.status == TransactionStatus.SUCCESS.value

        wallet_service = WalletService(db_session)
        wallet = await wallet_service.get_wallet(wallet_id)
        assert wallet.balance == 500
        assert wallet.total_deposits == 500
        assert (await wallet_service.audit_wallet(wallet_id)).is_consistent

    async def test_failed_payment_leaves_balance(self, db_session, wallet_factory):
        wallet_id, order_id = await _pending_deposit(db_session, wallet_factory)
        payment_service = PaymentService(db_session)

        transaction = await payment_service.apply_payment_status(order_id, "failed")
        assert transaction.status == TransactionStatus.FAILED.value

        # A late success for a failed order changes nothing
        transaction = await payment_service.apply_payment_status(order_id, "PAID")
        assert transaction.status == TransactionStatus.FAILED.value
        assert (await WalletService(db_session).get_wallet(wallet_id)).balance == 0

    async def test_non_final_status_keeps_pending(self, db_session, wallet_factory):
        _, order_id = await _pending_deposit(db_session, wallet_factory)

        transaction = await PaymentService(db_session).apply_payment_status(order_id, "ACTIVE")
        assert transaction.status == TransactionStatus.PENDING.value

    async def test_amount_mismatch_rejected(self, db_session, wallet_factory):
        wallet_id, order_id = await _pending_deposit(db_session, wallet_factory, amount=500)
        payment_service = PaymentService(db_session)

        with pytest.raises(PaymentAmountMismatchError):
            await payment_service.apply_payment_status(order_id, "PAID", amount=5000)

        transaction = await payment_service.get_payment_status(order_id)
        assert transaction.status == TransactionStatus.PENDING.value
        assert (await WalletService(db_session).get_wallet(wallet_id)).balance == 0

    async def test_paid_deposit_to_closed_wallet_stays_pending(self, db_session, wallet_factory):
        wallet_id, order_id = await _pending_deposit(db_session, wallet_factory, amount=500)
        wallet_service = WalletService(db_session)
        await wallet_service.set_status(wallet_id, WalletStatus.CLOSED)
        payment_service = PaymentService(db_session)

        with pytest.raises(WalletInactiveError):
            await payment_service.apply_payment_status(order_id, "PAID", amount=500)

        transaction = await payment_service.get_payment_status(order_id)
        assert transaction.status == TransactionStatus.PENDING.value
        wallet = await wallet_service.get_wallet(wallet_id)
        assert wallet.balance == 0
        assert wallet.total_deposits == 0

    async def test_unknown_order(self, db_session):
        with pytest.raises(TransactionNotFoundError):
            await PaymentService(db_session).apply_payment_status("WALLET_0_missing", "PAID")


class TestWebhookSignature:

    def test_valid_signature(self):
        body = b'{"order_id": "WALLET_1_abc", "order_status": "PAID"}'
        signature = hmac.new(b"secret", body, hashlib.sha256).hexdigest()

        assert verify_webhook_signature(body, signature, "secret") is True

    def test_invalid_or_missing_signature(self):
        body = b'{"order_id": "WALLET_1_abc", "order_status": "PAID"}'
        signature = hmac.new(b"other", body, hashlib.sha256).hexdigest()

        assert verify_webhook_signature(body, signature, "secret") is False
        assert verify_webhook_signature(body, None, "secret") is False
        assert verify_webhook_signature(body + b" ", signature, "other") is False
