from unittest.mock import AsyncMock

import pytest

from transactor import (
    BeginTransactionError,
    CommitTransactionError,
    NestedTransactionsNotSupportedError,
    Nested,
    Root,
    Transactor,
    nested_transactions_flattened,
    nested_transactions_mssql,
    nested_transactions_none,
    nested_transactions_savepoints,
    nested_transactions_savepoints_no_release,
)
from transactor.transaction import (
    FlattenedTransaction,
    MSSQLSavepointTransaction,
    NoNestedTransaction,
    SavepointTransaction,
    TransactionError,
)

from .conftest import StatementFailure


class BusinessError(Exception):
    pass


async def fail():
    raise BusinessError("an error occurred")


async def succeed():
    ...


# ============================================================================
# NONE
# ============================================================================


async def test_none_nested_transaction_fails_to_begin(db):
    transactor = Transactor(db, nested_transactions_none)
    inner = AsyncMock()
    seen = {}

    async def outer():
        with pytest.raises(BeginTransactionError) as exc_info:
            await transactor.within_transaction(inner)
        seen["cause"] = exc_info.value.__cause__
        seen["statements"] = list(db.statements)

    await transactor.within_transaction(outer)

    inner.assert_not_awaited()
    assert isinstance(seen["cause"], NestedTransactionsNotSupportedError)
    assert str(seen["cause"]) == "nested transactions are not supported"
    assert seen["statements"] == ["BEGIN"]
    assert db.statements == ["BEGIN", "COMMIT"]


async def test_none_outer_rolls_back_when_nested_error_propagates(db):
    transactor = Transactor(db, nested_transactions_none)

    async def outer():
        await transactor.within_transaction(succeed)

    with pytest.raises(BeginTransactionError):
        await transactor.within_transaction(outer)

    assert db.statements == ["BEGIN", "ROLLBACK"]


async def test_none_wrapper_forwards_to_transaction(db):
    tx = await db.begin()
    handle, completion = nested_transactions_none(Root(db), tx)

    assert isinstance(handle, NoNestedTransaction)
    assert completion is tx

    await handle.execute("SELECT 1")
    await handle.commit()
    await handle.rollback()

    assert db.statements == ["BEGIN", "SELECT 1", "COMMIT", "ROLLBACK"]


async def test_none_nested_scope_returns_existing_wrapper(db):
    wrapper = NoNestedTransaction(await db.begin())

    handle, completion = nested_transactions_none(Nested(wrapper), object())

    assert handle is wrapper
    assert completion is wrapper


# ============================================================================
# FLATTENED
# ============================================================================


async def test_flattened_nested_transactions_share_outer(db):
    transactor = Transactor(db, nested_transactions_flattened)
    handles = []

    async def inner():
        handles.append(transactor.get_db())
        await transactor.get_db().execute("UPDATE inner")

    async def outer():
        handles.append(transactor.get_db())
        await transactor.get_db().execute("UPDATE outer")
        await transactor.within_transaction(inner)

    await transactor.within_transaction(outer)

    assert isinstance(handles[0], FlattenedTransaction)
    assert handles[0] is handles[1]
    assert len(db.transactions) == 1
    assert db.statements == ["BEGIN", "UPDATE outer", "UPDATE inner", "COMMIT"]


async def test_flattened_nested_failure_is_not_rolled_back(db):
    transactor = Transactor(db, nested_transactions_flattened)

    async def outer():
        with pytest.raises(BusinessError):
            await transactor.within_transaction(fail)

    await transactor.within_transaction(outer)

    assert db.statements == ["BEGIN", "COMMIT"]


async def test_flattened_outer_failure_rolls_back_everything(db):
    transactor = Transactor(db, nested_transactions_flattened)

    async def outer():
        await transactor.within_transaction(succeed)
        raise BusinessError("an error occurred")

    with pytest.raises(BusinessError):
        await transactor.within_transaction(outer)

    assert db.statements == ["BEGIN", "ROLLBACK"]


# ============================================================================
# SAVEPOINTS
# ============================================================================


async def test_savepoints_rollback_nested_transaction(db):
    transactor = Transactor(db, nested_transactions_savepoints)

    async def outer():
        with pytest.raises(BusinessError):
            await transactor.within_transaction(fail)

    await transactor.within_transaction(outer)

    assert db.statements == [
        "BEGIN",
        "SAVEPOINT sp_1",
        "ROLLBACK TO SAVEPOINT sp_1",
        "COMMIT",
    ]


async def test_savepoints_commit_nested_transaction(db):
    transactor = Transactor(db, nested_transactions_savepoints)

    async def outer():
        await transactor.within_transaction(succeed)

    await transactor.within_transaction(outer)

    assert db.statements == [
        "BEGIN",
        "SAVEPOINT sp_1",
        "RELEASE SAVEPOINT sp_1",
        "COMMIT",
    ]


async def test_savepoints_rollback_nested_and_parent(db):
    transactor = Transactor(db, nested_transactions_savepoints)

    async def outer():
        await transactor.within_transaction(fail)

    with pytest.raises(BusinessError):
        await transactor.within_transaction(outer)

    assert db.statements == [
        "BEGIN",
        "SAVEPOINT sp_1",
        "ROLLBACK TO SAVEPOINT sp_1",
        "ROLLBACK",
    ]


async def test_savepoints_commit_second_level_rollback_first_level(db):
    transactor = Transactor(db, nested_transactions_savepoints)

    async def first():
        await transactor.within_transaction(succeed)
        raise BusinessError("an error occurred")

    async def outer():
        with pytest.raises(BusinessError):
            await transactor.within_transaction(first)

    await transactor.within_transaction(outer)

    assert db.statements == [
        "BEGIN",
        "SAVEPOINT sp_1",
        "SAVEPOINT sp_2",
        "RELEASE SAVEPOINT sp_2",
        "ROLLBACK TO SAVEPOINT sp_1",
        "COMMIT",
    ]


async def test_savepoints_siblings_reuse_depth_name(db):
    transactor = Transactor(db, nested_transactions_savepoints)

    async def outer():
        await transactor.within_transaction(succeed)
        with pytest.raises(BusinessError):
            await transactor.within_transaction(fail)
        await transactor.within_transaction(succeed)

    await transactor.within_transaction(outer)

    assert db.statements == [
        "BEGIN",
        "SAVEPOINT sp_1",
        "RELEASE SAVEPOINT sp_1",
        "SAVEPOINT sp_1",
        "ROLLBACK TO SAVEPOINT sp_1",
        "SAVEPOINT sp_1",
        "RELEASE SAVEPOINT sp_1",
        "COMMIT",
    ]


async def test_savepoints_rollback_failure_keeps_original_error(db):
    db.fail_on("ROLLBACK TO SAVEPOINT sp_1")
    transactor = Transactor(db, nested_transactions_savepoints)
    seen = {}

    async def outer():
        with pytest.raises(BusinessError) as exc_info:
            await transactor.within_transaction(fail)
        seen["error"] = exc_info.value

    await transactor.within_transaction(outer)

    assert str(seen["error"]) == "an error occurred"
    assert db.statements[-1] == "COMMIT"


async def test_savepoints_create_failure(db):
    db.fail_on("SAVEPOINT sp_1")
    transactor = Transactor(db, nested_transactions_savepoints)
    inner = AsyncMock()

    async def outer():
        with pytest.raises(BeginTransactionError) as exc_info:
            await transactor.within_transaction(inner)
        cause = exc_info.value.__cause__
        assert isinstance(cause, TransactionError)
        assert "failed to create savepoint" in str(cause)

    await transactor.within_transaction(outer)

    inner.assert_not_awaited()
    assert db.statements == ["BEGIN", "SAVEPOINT sp_1", "COMMIT"]


async def test_savepoints_release_failure(db):
    db.fail_on("RELEASE SAVEPOINT sp_1")
    transactor = Transactor(db, nested_transactions_savepoints)

    async def outer():
        with pytest.raises(CommitTransactionError) as exc_info:
            await transactor.within_transaction(succeed)
        assert "failed to release savepoint" in str(exc_info.value.__cause__)

    await transactor.within_transaction(outer)

    assert db.statements == [
        "BEGIN",
        "SAVEPOINT sp_1",
        "RELEASE SAVEPOINT sp_1",
        "COMMIT",
    ]


async def test_savepoint_depth_and_names(db):
    tx = await db.begin()
    root, completion = nested_transactions_savepoints(Root(db), tx)
    first, first_completion = nested_transactions_savepoints(Nested(root), tx)
    second, _ = nested_transactions_savepoints(Nested(first), tx)

    assert completion is tx
    assert first_completion is first
    assert (root.depth, first.depth, second.depth) == (0, 1, 2)
    assert (first.name, second.name) == ("sp_1", "sp_2")
    assert first.tx is second.tx is tx

    assert await second.begin() is tx
    assert db.statements[-1] == "SAVEPOINT sp_3"


async def test_savepoint_completion_is_one_shot(db):
    tx = await db.begin()
    savepoint = SavepointTransaction(tx, depth=1)

    await savepoint.commit()
    await savepoint.commit()
    await savepoint.rollback()

    assert savepoint.completed
    assert db.statements == ["BEGIN", "RELEASE SAVEPOINT sp_1"]


async def test_savepoint_rollback_is_one_shot(db):
    tx = await db.begin()
    savepoint = SavepointTransaction(tx, depth=2)

    assert not savepoint.completed
    await savepoint.rollback()
    await savepoint.rollback()
    await savepoint.commit()

    assert db.statements == ["BEGIN", "ROLLBACK TO SAVEPOINT sp_2"]


async def test_savepoints_no_release(db):
    transactor = Transactor(db, nested_transactions_savepoints_no_release)

    async def outer():
        await transactor.within_transaction(succeed)
        with pytest.raises(BusinessError):
            await transactor.within_transaction(fail)

    await transactor.within_transaction(outer)

    assert db.statements == [
        "BEGIN",
        "SAVEPOINT sp_1",
        "SAVEPOINT sp_1",
        "ROLLBACK TO SAVEPOINT sp_1",
        "COMMIT",
    ]


async def test_savepoints_mssql(db):
    transactor = Transactor(db, nested_transactions_mssql)

    async def first():
        await transactor.within_transaction(succeed)
        raise BusinessError("an error occurred")

    async def outer():
        with pytest.raises(BusinessError):
            await transactor.within_transaction(first)

    await transactor.within_transaction(outer)

    assert db.statements == [
        "BEGIN",
        "SAVE TRANSACTION sp_1",
        "SAVE TRANSACTION sp_2",
        "ROLLBACK TRANSACTION sp_1",
        "COMMIT",
    ]


# ============================================================================
# UNSUPPORTED HANDLES
# ============================================================================


@pytest.mark.parametrize(
    "strategy,foreign",
    (
        (nested_transactions_none, FlattenedTransaction),
        (nested_transactions_flattened, NoNestedTransaction),
        (nested_transactions_savepoints, MSSQLSavepointTransaction),
        (nested_transactions_mssql, SavepointTransaction),
        (nested_transactions_savepoints_no_release, SavepointTransaction),
    ),
)
async def test_strategy_rejects_foreign_wrappers(db, strategy, foreign):
    tx = await db.begin()

    with pytest.raises(TypeError, match="unsupported handle"):
        strategy(Nested(foreign(tx)), tx)


async def test_strategy_rejects_unknown_scope(db):
    tx = await db.begin()

    with pytest.raises(TypeError, match="unsupported handle"):
        nested_transactions_savepoints(db, tx)


async def test_nested_failure_surfaces_statement_error(db):
    db.fail_on("SAVEPOINT sp_1", StatementFailure("savepoint refused"))
    transactor = Transactor(db, nested_transactions_savepoints)

    async def outer():
        await transactor.within_transaction(succeed)

    with pytest.raises(BeginTransactionError, match="savepoint refused"):
        await transactor.within_transaction(outer)

    assert db.statements[-1] == "ROLLBACK"
