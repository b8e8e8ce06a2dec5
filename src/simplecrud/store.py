"""
=============================================================================
USER STORE
=============================================================================

The authoritative in-memory collection of user records.

=============================================================================
WHAT THE STORE GUARANTEES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        USER STORE STATE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   _records (insertion-ordered dict, keyed by id)                    │
    │   ┌────┬─────────────┬────────────────────┬─────┐                   │
    │   │ id │ name        │ email              │ age │                   │
    │   ├────┼─────────────┼────────────────────┼─────┤                   │
    │   │ 1  │ John Doe    │ john@example.com   │ 30  │                   │
    │   │ 2  │ Jane Smith  │ jane@example.com   │ 25  │                   │
    │   │ 3  │ Bob Johnson │ bob@example.com    │ 35  │                   │
    │   └────┴─────────────┴────────────────────┴─────┘                   │
    │                                                                      │
    │   _next_id = 4      (only ever goes up)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

1. IDS ARE OWNED BY THE STORE
   - create() hands out _next_id and then increments it
   - callers never supply an id
   - a deleted id is never handed out again

2. EMAILS ARE UNIQUE ON CREATE
   - exact, case-sensitive comparison
   - update() re-checks only when unique_email_on_update is set

3. ORDER IS INSERTION ORDER
   - list() returns records in the order they were created
   - update() keeps a record in its original position

4. RECORDS ARE SNAPSHOTS
   - User is a frozen dataclass
   - the only way to change state is through the store's operations

=============================================================================
THREADING
=============================================================================

The store holds no lock. HTTPServer.dispatch() runs one request at a
time, so each operation completes before the next one starts. Code that
shares a store across threads outside the server must serialize access
itself.

=============================================================================
"""

from dataclasses import dataclass, replace, asdict
from typing import Dict, Iterable, List, Optional
import logging

from .errors import DuplicateEmail, NotFound, ValidationFailed


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    """
    A single user record.

    Frozen so that a record handed out by the store cannot be changed
    behind the store's back. Updates produce a new instance via
    dataclasses.replace().
    """

    id: int
    name: str
    email: str
    age: int

    def to_dict(self) -> dict:
        """Serialize in the order clients see it: id, name, email, age."""
        return asdict(self)


# =============================================================================
# SEED DATA
# =============================================================================
# Every freshly created application starts with these three records.
# =============================================================================

SEED_USERS = (
    User(id=1, name="John Doe", email="john@example.com", age=30),
    User(id=2, name="Jane Smith", email="jane@example.com", age=25),
    User(id=3, name="Bob Johnson", email="bob@example.com", age=35),
)


def _is_absent(value) -> bool:
    """None and empty text count as "not provided"; 0 is a real age."""
    return value is None or value == ""


class UserStore:
    """
    In-memory CRUD store for user records.

    =========================================================================
    USAGE
    =========================================================================

        store = UserStore.with_seed()

        store.list()                          # [User(1...), User(2...), User(3...)]
        store.get(2)                          # User(id=2, name="Jane Smith", ...)
        store.create("Ann", "ann@x.io", 40)   # User(id=4, ...)
        store.update(2, age=26)               # User(id=2, ..., age=26)
        store.delete(1)                       # User(id=1, ...), now gone

    =========================================================================
    """

    def __init__(
        self,
        users: Iterable[User] = (),
        unique_email_on_update: bool = False,
    ):
        """
        Initialize the store.

        Args:
            users: Initial records. Their ids must be unique; the id
                   counter starts just above the highest one.
            unique_email_on_update: Also reject updates that would give a
                   record an email another record already holds.
        """
        self._records: Dict[int, User] = {}
        for user in users:
            if user.id in self._records:
                raise ValueError(f"Duplicate seed id: {user.id}")
            self._records[user.id] = user

        self._next_id = max(self._records, default=0) + 1
        self.unique_email_on_update = unique_email_on_update

    @classmethod
    def with_seed(cls, unique_email_on_update: bool = False) -> "UserStore":
        """Create a store holding the three seed users (next id 4)."""
        return cls(SEED_USERS, unique_email_on_update=unique_email_on_update)

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    def list(self) -> List[User]:
        """Return every record in insertion order. Never fails."""
        return list(self._records.values())

    def get(self, user_id: int) -> User:
        """
        Return the record with this id.

        Raises:
            NotFound: No record has this id.
        """
        user = self._records.get(user_id)
        if user is None:
            raise NotFound()
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        """Return the record holding exactly this email, if any."""
        for user in self._records.values():
            if user.email == email:
                return user
        return None

    @property
    def next_id(self) -> int:
        """The id the next create() will assign."""
        return self._next_id

    @property
    def count(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._records

    # =========================================================================
    # WRITE OPERATIONS
    # =========================================================================

    def create(self, name: Optional[str], email: Optional[str], age: Optional[int]) -> User:
        """
        Create a new record.

        =====================================================================
        ORDER OF CHECKS
        =====================================================================

        1. All three fields present     else ValidationFailed
        2. Email not held by anyone     else DuplicateEmail
        3. Assign _next_id, increment, store

        Nothing is modified unless all checks pass, so a refused create
        leaves both the records and the id counter untouched.

        =====================================================================

        Args:
            name: Display name (non-empty text).
            email: Email address (non-empty text).
            age: Age, already coerced to int by the caller.

        Returns:
            The stored record.

        Raises:
            ValidationFailed: A field is missing.
            DuplicateEmail: The email is already taken.
        """
        if _is_absent(name) or _is_absent(email) or _is_absent(age):
            raise ValidationFailed()

        if self.find_by_email(email) is not None:
            raise DuplicateEmail()

        user = User(id=self._next_id, name=name, email=email, age=age)
        self._records[user.id] = user
        self._next_id += 1

        logger.debug(f"Stored user {user.id}; next id is {self._next_id}")
        return user

    def update(
        self,
        user_id: int,
        name: Optional[str] = None,
        email: Optional[str] = None,
        age: Optional[int] = None,
    ) -> User:
        """
        Overwrite the provided fields of an existing record.

        Fields passed as None (or empty text) keep their current value,
        so update(2, age=26) touches only the age.

        Raises:
            NotFound: No record has this id.
            DuplicateEmail: Only with unique_email_on_update, when the new
                            email belongs to a different record.
        """
        current = self.get(user_id)

        changes = {}
        if not _is_absent(name):
            changes["name"] = name
        if not _is_absent(email):
            changes["email"] = email
        if not _is_absent(age):
            changes["age"] = age

        if self.unique_email_on_update and "email" in changes:
            holder = self.find_by_email(changes["email"])
            if holder is not None and holder.id != user_id:
                raise DuplicateEmail()

        updated = replace(current, **changes)
        # Assigning to an existing key keeps its position in the dict
        self._records[user_id] = updated
        return updated

    def delete(self, user_id: int) -> User:
        """
        Remove a record and return what it held.

        Raises:
            NotFound: No record has this id.
        """
        user = self.get(user_id)
        del self._records[user_id]
        return user


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# UserStore is the only owner of user state:
#
# 1. Ids come from a counter that never goes down
# 2. Emails are unique at creation time
# 3. Records come back as frozen snapshots in insertion order
#
# The store raises; it never builds HTTP responses. The users handler
# turns these exceptions into envelopes.
# =============================================================================
