"""
Sync engine: optimistic writes against the REST API, reconciled with the
broadcast bus.

Every mutation follows the same shape:

1. take the per-id lock (operations on one id run in order)
2. snapshot what the change will overwrite, apply the change locally and
   register a pending marker for the echo
3. call the API
4. success: acknowledge the marker (it lingers for the echo grace window)
   failure: discard the marker, restore the snapshot, set state.error and
   raise PersistenceError

Broadcast events for ids with a pending marker are our own echoes and are
dropped. Everything else is applied as last-write-wins.
"""
from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import uuid
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple, TypeVar, Union

from events import (
    BroadcastEvent,
    FeatureRequestCreated,
    FeatureRequestDeleted,
    LinkCreated,
    LinkDeleted,
    LinkUpdated,
    PersonCreated,
    PersonDeleted,
    PersonUpdated,
)
from models import (
    FeatureRequest,
    Link,
    LinkDraft,
    LinkUpdate,
    Person,
    PersonDraft,
    PersonUpdate,
    Viewport,
)
from utils.timestamp import utcnow_iso

from .api import RestClient
from .bus import BroadcastBus
from .config import SyncConfig
from .errors import NotFoundError, PersistenceError, SyncConnectionError
from .pending import PendingMarker, PendingOperations
from .state import SyncState
from .storage import LocalStorage, StoredData, ViewportPersister

logger = logging.getLogger("people_web")

RecordT = TypeVar("RecordT", Person, Link, FeatureRequest)


class EventBus(Protocol):
    connected: bool

    def start(self) -> None: ...

    def retry(self) -> None: ...

    async def stop(self) -> None: ...


BusFactory = Callable[[Callable[[BroadcastEvent], None], Callable[[bool], None]], EventBus]


def _index_of(items: Sequence[RecordT], record_id: str) -> int:
    for i, item in enumerate(items):
        if item.id == record_id:
            return i
    return -1


def _replace(items: List[RecordT], record: RecordT) -> List[RecordT]:
    return [record if item.id == record.id else item for item in items]


def _without(items: List[RecordT], ids: Iterable[str]) -> List[RecordT]:
    drop = set(ids)
    return [item for item in items if item.id not in drop]


def _restore(items: List[RecordT], snapshots: Sequence[Tuple[int, RecordT]]) -> List[RecordT]:
    """Put removed records back at the positions they were taken from."""
    restored = list(items)
    present = {item.id for item in restored}
    for index, record in sorted(snapshots, key=lambda pair: pair[0]):
        if record.id in present:
            continue
        restored.insert(min(index, len(restored)), record)
        present.add(record.id)
    return restored


class _IdLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class SyncEngine:
    def __init__(
        self,
        api: RestClient,
        *,
        config: Optional[SyncConfig] = None,
        storage: Optional[LocalStorage] = None,
        bus_factory: Optional[BusFactory] = None,
        state: Optional[SyncState] = None,
    ) -> None:
        self.api = api
        self.config = config or SyncConfig()
        self.state = state or SyncState()
        self.pending = PendingOperations(self.config.echo_grace_seconds)
        self.storage = storage
        self._bus_factory = bus_factory or self._default_bus
        self.bus: Optional[EventBus] = None

        self._locks: Dict[str, _IdLock] = {}
        self._inflight: Set[asyncio.Task] = set()
        self._closed = False
        self._owns_api = False

        self.viewport_persister: Optional[ViewportPersister] = None
        if storage is not None:
            self._seed(storage.load())
            self.viewport_persister = ViewportPersister(
                storage, self._snapshot, self.config.autosave_delay_seconds
            )

    @classmethod
    def from_config(cls, config: Optional[SyncConfig] = None, **kwargs: Any) -> "SyncEngine":
        """Build an engine with its own REST client and local storage."""
        config = config or SyncConfig.from_env()
        api = RestClient(
            config.api_base_url,
            timeout_seconds=config.request_timeout_seconds,
            transport=kwargs.pop("transport", None),
        )
        kwargs.setdefault("storage", LocalStorage(config.storage_path))
        engine = cls(api, config=config, **kwargs)
        engine._owns_api = True
        return engine

    # Lifecycle

    def _seed(self, data: StoredData) -> None:
        # Cached data only fills the canvas until bootstrap() answers
        self.state.people = list(data.people)
        self.state.links = [link for link in data.links if not link.is_derived]
        self.state.viewport = data.viewport
        logger.info(
            f"Seeded local state: {len(self.state.people)} people, {len(self.state.links)} links"
        )

    def _snapshot(self) -> StoredData:
        return StoredData(
            people=list(self.state.people),
            links=list(self.state.links),
            viewport=self.state.viewport,
        )

    async def bootstrap(self) -> None:
        """
        Replace local state with the server's collections, then subscribe to
        the broadcast bus.

        Raises:
            SyncConnectionError: the initial fetch failed. state.error is set
                and the caller is expected to offer a retry.
        """
        self.state.is_loading = True
        self.state.error = None
        self.state.notify()

        try:
            people, links = await self.api.fetch_all_data()
        except PersistenceError as e:
            logger.error(f"Failed to initialize store: {e}")
            self.state.is_loading = False
            self.state.error = str(e) or "Failed to connect to server"
            self.state.notify()
            raise SyncConnectionError(f"Failed to connect to server: {e}") from e

        self.state.people = people
        self.state.links = [link for link in links if not link.is_derived]
        self.state.is_loading = False
        self.state.notify()
        logger.info(f"Loaded {len(people)} people and {len(self.state.links)} links from server")

        self.connect()

    def _default_bus(
        self, on_event: Callable[[BroadcastEvent], None], on_status: Callable[[bool], None]
    ) -> EventBus:
        return BroadcastBus(
            self.config.events_url,
            on_event=on_event,
            on_status=on_status,
            reconnect_attempts=self.config.reconnect_attempts,
            reconnect_delay_seconds=self.config.reconnect_delay_seconds,
            connect_timeout_seconds=self.config.request_timeout_seconds,
        )

    def connect(self) -> None:
        """Open the broadcast subscription. Connection state lands in state.is_connected."""
        if self._closed:
            raise RuntimeError("SyncEngine is closed")
        if self.bus is None:
            self.bus = self._bus_factory(self.reconcile, self._on_connection_change)
        self.bus.start()

    async def disconnect(self) -> None:
        if self.bus is not None:
            await self.bus.stop()
        self._on_connection_change(False)

    def retry_connection(self) -> None:
        """Manual reconnect once automatic attempts have run out."""
        if self.bus is None:
            self.connect()
            return
        self.bus.retry()

    def _on_connection_change(self, connected: bool) -> None:
        if self.state.is_connected == connected:
            return
        self.state.is_connected = connected
        self.state.notify()

    async def close(self) -> None:
        """
        Tear down: stop the bus, cancel in-flight operations and pending
        timers, write any waiting viewport change.
        """
        if self._closed:
            return
        self._closed = True

        current = asyncio.current_task()
        tasks = [task for task in self._inflight if task is not current and not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self.bus is not None:
            await self.bus.stop()
        self.pending.clear()
        if self.viewport_persister is not None:
            self.viewport_persister.flush()
        if self._owns_api:
            await self.api.aclose()
        logger.info("Sync engine closed")

    # Plumbing shared by the mutations

    async def _serialized(self, kind: str, record_id: str, operation: Callable[[], Awaitable[Any]]) -> Any:
        if self._closed:
            raise RuntimeError("SyncEngine is closed")
        task = asyncio.current_task()
        if task is not None:
            self._inflight.add(task)
        try:
            async with self._id_lock(kind, record_id):
                if self._closed:
                    raise asyncio.CancelledError()
                return await operation()
        finally:
            if task is not None:
                self._inflight.discard(task)

    @contextlib.asynccontextmanager
    async def _id_lock(self, kind: str, record_id: str) -> AsyncIterator[None]:
        key = f"{kind}:{record_id}"
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _IdLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(key, None)

    async def _persist(
        self,
        call: Callable[[], Awaitable[Any]],
        markers: Sequence[PendingMarker],
        rollback: Callable[[], None],
        failure_message: str,
        *,
        missing_ok: bool = False,
    ) -> Any:
        """
        Run one API call for an already-applied optimistic change.

        With missing_ok a 404 counts as success without an echo (the record
        is already gone on the server).
        """
        try:
            result = await call()
        except NotFoundError:
            for marker in markers:
                self.pending.discard(marker)
            if missing_ok:
                logger.info(f"{failure_message}: record already gone on server, ignoring")
                return None
            rollback()
            self._fail(failure_message, PersistenceError("Not found", status_code=404))
            raise
        except PersistenceError as e:
            for marker in markers:
                self.pending.discard(marker)
            rollback()
            self._fail(failure_message, e)
            raise
        except asyncio.CancelledError:
            for marker in markers:
                self.pending.discard(marker)
            if not self._closed:
                rollback()
                self.state.notify()
            raise

        for marker in markers:
            self.pending.acknowledge(marker)
        return result

    def _fail(self, message: str, error: Exception) -> None:
        logger.error(f"{message}: {error}")
        self.state.error = message
        self.state.notify()

    def clear_error(self) -> None:
        self.state.error = None
        self.state.notify()

    # People

    async def create_person(self, draft: Union[PersonDraft, Dict[str, Any]]) -> Person:
        """
        Create a person from user input. The new record is in state before
        the server is called; it is removed again if the call fails.

        Raises:
            PersistenceError: the server rejected the create or timed out
        """
        if not isinstance(draft, PersonDraft):
            draft = PersonDraft.model_validate(draft)
        now = utcnow_iso()
        person = Person(id=str(uuid.uuid4()), created_at=now, updated_at=now, **draft.model_dump())

        async def operation() -> Person:
            self.state.people = [*self.state.people, person]
            marker = self.pending.add("person", "create", person.id)
            self.state.notify()

            def rollback() -> None:
                self.state.people = _without(self.state.people, [person.id])

            await self._persist(
                lambda: self.api.people.create(person), [marker], rollback, "Failed to save person"
            )
            return person

        return await self._serialized("person", person.id, operation)

    async def update_person(
        self, person_id: str, changes: Union[PersonUpdate, Dict[str, Any]]
    ) -> Optional[Person]:
        """
        Merge changes into a person and save the full record.

        Returns None without doing anything when the person isn't in local
        state (it was deleted under us).
        """
        if not isinstance(changes, PersonUpdate):
            changes = PersonUpdate.model_validate(changes)
        fields = changes.model_dump(exclude_unset=True)
        fields.pop("updated_at", None)

        async def operation() -> Optional[Person]:
            existing = self.state.get_person_by_id(person_id)
            if existing is None:
                logger.debug(f"update_person: {person_id} not in local state, skipping")
                return None
            updated = Person.model_validate(
                {**existing.model_dump(), **fields, "updated_at": utcnow_iso()}
            )
            self.state.people = _replace(self.state.people, updated)
            marker = self.pending.add("person", "update", person_id)
            self.state.notify()

            def rollback() -> None:
                if self.state.get_person_by_id(person_id) is not None:
                    self.state.people = _replace(self.state.people, existing)

            await self._persist(
                lambda: self.api.people.update(person_id, updated),
                [marker],
                rollback,
                "Failed to update person",
                missing_ok=True,
            )
            return updated

        return await self._serialized("person", person_id, operation)

    async def move_person(self, person_id: str, x: float, y: float) -> Optional[Person]:
        """Drag end: persist a new canvas position."""
        return await self.update_person(person_id, {"position": {"x": x, "y": y}})

    async def delete_person(self, person_id: str) -> bool:
        """
        Delete a person and, locally, every link touching them. A failed
        delete puts the person and the links back where they were.

        Returns False when the person isn't in local state.
        """

        async def operation() -> bool:
            index = _index_of(self.state.people, person_id)
            if index < 0:
                return False
            dependent = sorted(link.id for link in self.state.get_links_for_person(person_id))
            async with contextlib.AsyncExitStack() as stack:
                # Link edits in flight settle before the snapshot is taken
                for link_id in dependent:
                    await stack.enter_async_context(self._id_lock("link", link_id))
                if self._closed:
                    raise asyncio.CancelledError()
                return await self._delete_person_locked(person_id)

        return await self._serialized("person", person_id, operation)

    async def _delete_person_locked(self, person_id: str) -> bool:
        index = _index_of(self.state.people, person_id)
        if index < 0:
            return False
        person = self.state.people[index]
        link_snapshots = [
            (i, link) for i, link in enumerate(self.state.links)
            if link.source_id == person_id or link.target_id == person_id
        ]
        link_ids = [link.id for _, link in link_snapshots]

        self.state.people = _without(self.state.people, [person_id])
        self.state.links = _without(self.state.links, link_ids)
        self._forget(person_ids=[person_id], link_ids=link_ids)
        markers = [self.pending.add("person", "delete", person_id)]
        markers += [self.pending.add("link", "delete", link_id) for link_id in link_ids]
        self.state.notify()

        def rollback() -> None:
            self.state.people = _restore(self.state.people, [(index, person)])
            self.state.links = _restore(self.state.links, link_snapshots)

        await self._persist(
            lambda: self.api.people.delete(person_id),
            markers,
            rollback,
            "Failed to delete person",
            missing_ok=True,
        )
        return True

    # Links

    async def create_link(self, draft: Union[LinkDraft, Dict[str, Any]]) -> Link:
        """
        Create a manual link. Stream and interest links are computed from
        people and can't be created directly (ValueError).

        Raises:
            PersistenceError: the server rejected the create (e.g. unknown
                endpoint) or timed out
        """
        if not isinstance(draft, LinkDraft):
            draft = LinkDraft.model_validate(draft)
        now = utcnow_iso()
        link = Link(id=str(uuid.uuid4()), created_at=now, updated_at=now, **draft.model_dump())
        if link.is_derived:
            raise ValueError(f"{link.type.value} links are derived from people and can't be created")

        async def operation() -> Link:
            self.state.links = [*self.state.links, link]
            marker = self.pending.add("link", "create", link.id)
            self.state.notify()

            def rollback() -> None:
                self.state.links = _without(self.state.links, [link.id])

            await self._persist(
                lambda: self.api.links.create(link), [marker], rollback, "Failed to save link"
            )
            return link

        return await self._serialized("link", link.id, operation)

    async def update_link(self, link_id: str, changes: Union[LinkUpdate, Dict[str, Any]]) -> Optional[Link]:
        if not isinstance(changes, LinkUpdate):
            changes = LinkUpdate.model_validate(changes)
        fields = changes.model_dump(exclude_unset=True)
        fields.pop("updated_at", None)

        async def operation() -> Optional[Link]:
            existing = self.state.get_link_by_id(link_id)
            if existing is None:
                logger.debug(f"update_link: {link_id} not in local state, skipping")
                return None
            updated = Link.model_validate(
                {**existing.model_dump(), **fields, "updated_at": utcnow_iso()}
            )
            if updated.is_derived:
                raise ValueError(f"Can't turn a manual link into a {updated.type.value} link")
            self.state.links = _replace(self.state.links, updated)
            marker = self.pending.add("link", "update", link_id)
            self.state.notify()

            def rollback() -> None:
                if self.state.get_link_by_id(link_id) is not None:
                    self.state.links = _replace(self.state.links, existing)

            await self._persist(
                lambda: self.api.links.update(link_id, updated),
                [marker],
                rollback,
                "Failed to update link",
                missing_ok=True,
            )
            return updated

        return await self._serialized("link", link_id, operation)

    async def delete_link(self, link_id: str) -> bool:
        async def operation() -> bool:
            index = _index_of(self.state.links, link_id)
            if index < 0:
                return False
            link = self.state.links[index]

            self.state.links = _without(self.state.links, [link_id])
            self._forget(link_ids=[link_id])
            marker = self.pending.add("link", "delete", link_id)
            self.state.notify()

            def rollback() -> None:
                self.state.links = _restore(self.state.links, [(index, link)])

            await self._persist(
                lambda: self.api.links.delete(link_id),
                [marker],
                rollback,
                "Failed to delete link",
                missing_ok=True,
            )
            return True

        return await self._serialized("link", link_id, operation)

    # Feature requests (not optimistic)

    async def load_feature_requests(self) -> List[FeatureRequest]:
        try:
            requests = await self.api.feature_requests.get_all()
        except PersistenceError as e:
            self._fail("Failed to load feature requests", e)
            raise
        self.state.feature_requests = requests
        self.state.notify()
        return requests

    async def submit_feature_request(self, text: str, author_name: Optional[str] = None) -> FeatureRequest:
        text = text.strip()
        if not text:
            raise ValueError("Feature request text is required")
        request = FeatureRequest(
            id=str(uuid.uuid4()),
            author_name=(author_name or "").strip() or None,
            request_text=text,
            created_at=utcnow_iso(),
        )
        try:
            saved = await self.api.feature_requests.create(request)
        except PersistenceError as e:
            self._fail("Failed to submit feature request", e)
            raise
        saved = saved or request
        # The broadcast may already have delivered it
        if _index_of(self.state.feature_requests, saved.id) < 0:
            self.state.feature_requests = [saved, *self.state.feature_requests]
            self.state.notify()
        return saved

    async def delete_feature_request(self, request_id: str) -> None:
        try:
            await self.api.feature_requests.delete(request_id)
        except NotFoundError:
            logger.info(f"Feature request {request_id} already gone on server")
        except PersistenceError as e:
            self._fail("Failed to delete feature request", e)
            raise
        if _index_of(self.state.feature_requests, request_id) >= 0:
            self.state.feature_requests = _without(self.state.feature_requests, [request_id])
            self.state.notify()

    # Broadcast reconciliation

    def reconcile(self, event: BroadcastEvent) -> bool:
        """
        Apply one broadcast event to local state.

        Returns True if state changed. Echoes of our own pending operations
        are consumed and dropped.
        """
        if self._closed:
            return False
        if event.kind in ("person", "link") and self.pending.consume(event.kind, event.action, event.object_id):
            logger.debug(f"Suppressed echo of {event.event_type.value} {event.object_id}")
            return False

        if isinstance(event, PersonUpdated):
            changed = self._apply_person_updated(event.person)
        elif isinstance(event, PersonCreated):
            changed = self._apply_person_created(event.person)
        elif isinstance(event, PersonDeleted):
            changed = self._apply_person_deleted(event.id)
        elif isinstance(event, LinkUpdated):
            changed = self._apply_link_updated(event.link)
        elif isinstance(event, LinkCreated):
            changed = self._apply_link_created(event.link)
        elif isinstance(event, LinkDeleted):
            changed = self._apply_link_deleted(event.id)
        elif isinstance(event, FeatureRequestCreated):
            changed = self._apply_feature_request_created(event.request)
        elif isinstance(event, FeatureRequestDeleted):
            changed = self._apply_feature_request_deleted(event.id)
        else:
            logger.warning(f"Unhandled broadcast event: {event.event_type.value}")
            return False

        if changed:
            self.state.notify()
        return changed

    def _apply_person_created(self, person: Person) -> bool:
        if _index_of(self.state.people, person.id) >= 0:
            return False
        self.state.people = [*self.state.people, person]
        return True

    def _apply_person_updated(self, person: Person) -> bool:
        if _index_of(self.state.people, person.id) < 0:
            return False
        self.state.people = _replace(self.state.people, person)
        return True

    def _apply_person_deleted(self, person_id: str) -> bool:
        if _index_of(self.state.people, person_id) < 0:
            return False
        link_ids = [link.id for link in self.state.get_links_for_person(person_id)]
        self.state.people = _without(self.state.people, [person_id])
        self.state.links = _without(self.state.links, link_ids)
        self._forget(person_ids=[person_id], link_ids=link_ids)
        return True

    def _apply_link_created(self, link: Link) -> bool:
        if link.is_derived or _index_of(self.state.links, link.id) >= 0:
            return False
        self.state.links = [*self.state.links, link]
        return True

    def _apply_link_updated(self, link: Link) -> bool:
        if link.is_derived or _index_of(self.state.links, link.id) < 0:
            return False
        self.state.links = _replace(self.state.links, link)
        return True

    def _apply_link_deleted(self, link_id: str) -> bool:
        if _index_of(self.state.links, link_id) < 0:
            return False
        self.state.links = _without(self.state.links, [link_id])
        self._forget(link_ids=[link_id])
        return True

    def _apply_feature_request_created(self, request: FeatureRequest) -> bool:
        if _index_of(self.state.feature_requests, request.id) >= 0:
            return False
        self.state.feature_requests = [request, *self.state.feature_requests]
        return True

    def _apply_feature_request_deleted(self, request_id: str) -> bool:
        if _index_of(self.state.feature_requests, request_id) < 0:
            return False
        self.state.feature_requests = _without(self.state.feature_requests, [request_id])
        return True

    def _forget(self, person_ids: Sequence[str] = (), link_ids: Sequence[str] = ()) -> None:
        for person_id in person_ids:
            self.state.selection.forget_person(person_id)
            if self.state.pending_link_source_id == person_id:
                self.state.pending_link_source_id = None
        for link_id in link_ids:
            self.state.selection.forget_link(link_id)

    # Selection and confirmation

    def select_person(self, person_id: Optional[str]) -> None:
        self.state.selection.select_person(person_id)
        self.state.notify()

    def select_link(self, link_id: Optional[str]) -> None:
        self.state.selection.select_link(link_id)
        self.state.notify()

    def clear_selection(self) -> None:
        self.state.selection.clear()
        self.state.notify()

    def set_pending_link_source(self, person_id: Optional[str]) -> None:
        self.state.pending_link_source_id = person_id
        self.state.notify()

    def request_confirmation(self, message: str, action: Callable[[], Any]) -> None:
        self.state.confirm.open(message, action)
        self.state.notify()

    def request_delete_person(self, person_id: str) -> bool:
        """Ask for confirmation before deleting a person. False if the person is unknown."""
        person = self.state.get_person_by_id(person_id)
        if person is None:
            return False
        self.request_confirmation(
            f'Delete "{person.name}"? This will also remove all their connections.',
            lambda: self.delete_person(person_id),
        )
        return True

    def request_delete_link(self, link_id: str) -> bool:
        if self.state.get_link_by_id(link_id) is None:
            return False
        self.request_confirmation(
            "Delete this connection?",
            lambda: self.delete_link(link_id),
        )
        return True

    def request_delete_selected(self) -> bool:
        """Keyboard delete: route whatever is selected through the confirmation gate."""
        selection = self.state.selection
        if selection.person_id is not None:
            return self.request_delete_person(selection.person_id)
        if selection.link_id is not None:
            return self.request_delete_link(selection.link_id)
        return False

    async def confirm(self) -> Any:
        """Run the action waiting in the confirmation gate, if any."""
        result = self.state.confirm.confirm()
        self.state.notify()
        if inspect.isawaitable(result):
            result = await result
        return result

    def cancel_confirmation(self) -> None:
        self.state.confirm.cancel()
        self.state.notify()

    # Viewport (local only)

    def set_viewport(self, viewport: Union[Viewport, Dict[str, Any]]) -> None:
        if not isinstance(viewport, Viewport):
            viewport = Viewport.model_validate(viewport)
        self.state.viewport = viewport
        if self.viewport_persister is not None:
            self.viewport_persister.schedule()
        self.state.notify()
