"""
acl_store — Hello World

Permission data lives in sets addressed by (bucket, key). Reads go
straight to the store; writes are queued on a transaction and land
all at once.
"""

import asyncio

from acl_store import create_store

# ─── A tiny "is X allowed to do Y" on top of the store ───


async def allowed_actions(store, user: str, resource: str) -> set[str]:
    roles = await store.get("users", user)
    # One batched round trip for every bucket we need.
    found = await store.unions(["parents", f"allows_{resource}"], sorted(roles))
    inherited = found["parents"] - roles
    actions = found[f"allows_{resource}"]
    if inherited:
        actions |= await store.union(f"allows_{resource}", sorted(inherited))
    return actions


async def main():
    # ──────────────────────────────────────
    #  1. Create the store
    # ──────────────────────────────────────
    store = create_store({"type": "memory", "prefix": "demo"})

    # ──────────────────────────────────────
    #  2. Grant permissions in one transaction
    # ──────────────────────────────────────
    async with store.transaction() as txn:
        store.add(txn, "users", "alice", "editor")
        store.add(txn, "users", "bob", "viewer")
        store.add(txn, "parents", "editor", "viewer")
        store.add(txn, "allows_docs", "viewer", "read")
        store.add(txn, "allows_docs", "editor", ["write", "delete"])

    print("=== After grant ===\n")
    for user in ("alice", "bob"):
        print(f"  {user:5} docs: {sorted(await allowed_actions(store, user, 'docs'))}")

    # ──────────────────────────────────────
    #  3. Revoke, explicitly threading the transaction
    # ──────────────────────────────────────
    txn = store.begin()
    store.remove(txn, "allows_docs", "editor", "delete")
    store.delete(txn, "users", "bob")
    await store.end(txn)

    print("\n=== After revoke ===\n")
    for user in ("alice", "bob"):
        print(f"  {user:5} docs: {sorted(await allowed_actions(store, user, 'docs'))}")

    # ──────────────────────────────────────
    #  4. Reset
    # ──────────────────────────────────────
    await store.clean()
    print(f"\n  after clean: {await store.get('users', 'alice')}")


if __name__ == "__main__":
    asyncio.run(main())
