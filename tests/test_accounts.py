from __future__ import annotations

from datetime import timedelta

import pytest

from clubwheel.database.models import AccountRole, LedgerCategory
from clubwheel.database.repo import accounts as accounts_repo
from clubwheel.errors import AccountBanned, RoleForbidden, ValidationError
from clubwheel.services.ledger import LedgerService


async def test_registration_grants_bonus_through_ledger(session, accounts):
    account, created = await accounts.login_or_register(session, phone="8 (771) 123-37-38", name=" Aida ", telegram_id=42)
    await session.commit()

    assert created is True
    assert account.phone == "+77711233738"
    assert account.name == "Aida"
    assert account.role == AccountRole.PLAYER
    assert account.balance == 15
    assert len(account.public_id) == 24

    entries = await LedgerService.history(session, account_id=account.id)
    assert [(e.category, e.amount) for e in entries] == [(LedgerCategory.REGISTRATION_BONUS, 15)]


async def test_login_returns_existing_account(session, accounts):
    first, _ = await accounts.login_or_register(session, phone="+77711233738")
    await session.commit()

    again, created = await accounts.login_or_register(session, phone="87711233738", telegram_id=7, name="Bek")
    assert created is False
    assert again.id == first.id
    assert again.telegram_id == 7
    assert again.name == "Bek"
    assert await LedgerService.balance_from_ledger(session, account_id=first.id) == 15


async def test_phone_is_required(session, accounts):
    with pytest.raises(ValidationError):
        await accounts.login_or_register(session, phone="  ")


async def test_adjust_balance(session, accounts, make_player):
    account = await make_player()

    assert await accounts.adjust_balance(session, account, amount=35) == 50
    assert await accounts.adjust_balance(session, account, amount=-50) == 0
    with pytest.raises(ValidationError):
        await accounts.adjust_balance(session, account, amount=-1)
    with pytest.raises(ValidationError):
        await accounts.adjust_balance(session, account, amount=0)

    assert await accounts_repo.current_balance(session, account.id) == 0
    assert await LedgerService.balance_from_ledger(session, account_id=account.id) == 0


async def test_ban_until_expiry(session, accounts, make_player, clock):
    account = await make_player()
    await accounts.ban(session, account, until=clock.now() + timedelta(hours=1), reason="spam")

    with pytest.raises(AccountBanned) as exc:
        await accounts.ensure_can_act(session, account)
    assert exc.value.reason == "spam"
    assert exc.value.until == clock.now() + timedelta(hours=1)

    clock.advance(hours=1)
    await accounts.ensure_can_act(session, account)
    assert account.is_banned is False
    assert account.ban_until is None


async def test_indefinite_ban_and_unban(session, accounts, make_player, clock):
    account = await make_player()
    await accounts.ban(session, account)
    clock.advance(days=365)

    with pytest.raises(AccountBanned):
        await accounts.ensure_can_act(session, account)

    await accounts.unban(session, account)
    await accounts.ensure_can_act(session, account)


async def test_admin_cannot_be_banned(session, accounts, make_player):
    account = await make_player()
    account.role = AccountRole.ADMIN
    await session.flush()

    with pytest.raises(RoleForbidden):
        await accounts.ban(session, account)


async def test_role_gate(session, accounts, make_player):
    account = await make_player()
    await accounts.ensure_can_act(session, account, role=AccountRole.PLAYER)
    with pytest.raises(RoleForbidden):
        await accounts.ensure_can_act(session, account, role=AccountRole.ADMIN)
