import asyncio
import os
from tempfile import TemporaryDirectory

from transactor import SQLiteDatabase, Transactor


async def run(path: str):
    db = SQLiteDatabase(path)
    transactor = Transactor(db)

    await db.execute("CREATE TABLE balances (id INTEGER, amount INTEGER)")
    await db.execute("INSERT INTO balances VALUES (1, 100), (2, 0)")

    async def transfer(amount: int):
        await transactor.get_db().execute(
            "UPDATE balances SET amount = amount - ? WHERE id = 1", (amount,)
        )
        await transactor.get_db().execute(
            "UPDATE balances SET amount = amount + ? WHERE id = 2", (amount,)
        )

    await transactor.within_transaction(transfer, 30)
    print(await db.fetch_all("SELECT * FROM balances"))
    await db.close()


with TemporaryDirectory() as directory:
    asyncio.run(run(os.path.join(directory, "bank.db")))
