"""
In-memory stand-in for the Motor database used by the service tests.

Supports the subset of the collection API the services call: find (with
to_list/sort/limit), find_one, insert_one, update_one/update_many ($set, $inc),
delete_one/delete_many, count_documents and create_index. Filters support
equality (None also matches a missing key), $in, $gt, $ne and $exists.
"""
import copy
import itertools
from types import SimpleNamespace

_MISSING = object()
_ids = itertools.count(1)


def _matches_condition(value, condition):
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$in":
                if (None if value is _MISSING else value) not in operand:
                    return False
            elif op == "$gt":
                if value is _MISSING or value is None or not value > operand:
                    return False
            elif op == "$ne":
                if (None if value is _MISSING else value) == operand:
                    return False
            elif op == "$exists":
                if (value is not _MISSING) != bool(operand):
                    return False
            else:
                raise NotImplementedError(op)
        return True
    if condition is None:
        return value is _MISSING or value is None
    return value is not _MISSING and value == condition


def matches(doc, query):
    return all(_matches_condition(doc.get(key, _MISSING), cond) for key, cond in (query or {}).items())


def project(doc, projection):
    if not projection:
        return copy.deepcopy(doc)
    included = [k for k, v in projection.items() if v and k != "_id"]
    if included:
        result = {k: copy.deepcopy(doc[k]) for k in included if k in doc}
        if projection.get("_id", 1) and "_id" in doc:
            result["_id"] = doc["_id"]
        return result
    return {k: copy.deepcopy(v) for k, v in doc.items() if projection.get(k, 1)}


class MemoryCursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs = sorted(
            self._docs,
            key=lambda d: (d.get(key) is None, d.get(key)),
            reverse=direction == -1,
        )
        return self

    def limit(self, count):
        if count:
            self._docs = self._docs[:count]
        return self

    async def to_list(self, length=None):
        return self._docs if length is None else self._docs[:length]


class MemoryCollection:
    def __init__(self, name):
        self.name = name
        self.docs = []
        self.indexes = []

    def _find(self, query):
        return [doc for doc in self.docs if matches(doc, query)]

    def find(self, query=None, projection=None):
        return MemoryCursor([project(doc, projection) for doc in self._find(query)])

    async def find_one(self, query=None, projection=None):
        found = self._find(query)
        return project(found[0], projection) if found else None

    async def insert_one(self, document):
        # Motor adds _id to the caller's dict
        document.setdefault("_id", f"oid-{next(_ids)}")
        self.docs.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def insert_many(self, documents):
        for document in documents:
            await self.insert_one(document)
        return SimpleNamespace(inserted_ids=[d["_id"] for d in documents])

    def _apply_update(self, doc, update):
        before = copy.deepcopy(doc)
        for key, value in update.get("$set", {}).items():
            doc[key] = copy.deepcopy(value)
        for key, amount in update.get("$inc", {}).items():
            doc[key] = doc.get(key, 0) + amount
        unknown = set(update) - {"$set", "$inc"}
        if unknown:
            raise NotImplementedError(sorted(unknown))
        return doc != before

    async def update_one(self, query, update):
        found = self._find(query)[:1]
        modified = sum(1 for doc in found if self._apply_update(doc, update))
        return SimpleNamespace(matched_count=len(found), modified_count=modified)

    async def update_many(self, query, update):
        found = self._find(query)
        modified = sum(1 for doc in found if self._apply_update(doc, update))
        return SimpleNamespace(matched_count=len(found), modified_count=modified)

    async def delete_one(self, query):
        found = self._find(query)[:1]
        for doc in found:
            self.docs.remove(doc)
        return SimpleNamespace(deleted_count=len(found))

    async def delete_many(self, query):
        found = self._find(query)
        for doc in found:
            self.docs.remove(doc)
        return SimpleNamespace(deleted_count=len(found))

    async def count_documents(self, query):
        return len(self._find(query))

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return str(keys)


class MemoryDatabase:
    def __init__(self):
        self._collections = {}

    def __getitem__(self, name):
        if name not in self._collections:
            self._collections[name] = MemoryCollection(name)
        return self._collections[name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    async def command(self, *args, **kwargs):
        return {"ok": 1}
