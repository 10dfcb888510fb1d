import asyncio
import os
from tempfile import TemporaryDirectory

from transactor import (
    SQLiteDatabase,
    Transactor,
    nested_transactions_savepoints,
)


class InsufficientFunds(Exception):
    pass


async def run(path: str):
    db = SQLiteDatabase(path)
    transactor = Transactor(db, nested_transactions_savepoints)

    await db.execute("CREATE TABLE balances (id INTEGER, amount INTEGER)")
    await db.execute("INSERT INTO balances VALUES (1, 100), (2, 0)")

    async def withdraw(account: int, amount: int):
        await transactor.get_db().execute(
            "UPDATE balances SET amount = amount - ? WHERE id = ?",
            (amount, account),
        )
        row = await transactor.get_db().fetch_one(
            "SELECT amount FROM balances WHERE id = ?", (account,)
        )
        if row["amount"] < 0:
            raise InsufficientFunds(account)

    async def payday():
        await transactor.get_db().execute(
            "UPDATE balances SET amount = amount + 50 WHERE id = 2"
        )
        try:
            # Only the withdrawal is rolled back
            await transactor.within_transaction(withdraw, 2, 500)
        except InsufficientFunds as e:
            print(f"Account {e} cannot pay")

    await transactor.within_transaction(payday)
    print(await db.fetch_all("SELECT * FROM balances"))
    await db.close()


with TemporaryDirectory() as directory:
    asyncio.run(run(os.path.join(directory, "bank.db")))
