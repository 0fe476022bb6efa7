from uuid import UUID

from pydantic import ValidationError as PayloadError

from core.logger import StructuredLogger
from domain.cache import Cache, CacheKeyBuilder
from domain.entities import DepartmentWithHierarchy
from domain.errors import CycleError, NotFoundError
from domain.hierarchy import build_hierarchy_tree, dump_hierarchy, load_hierarchy
from domain.repositories import DepartmentRepository

HIERARCHY = 'hierarchy'


class HierarchyEngine:
    """
    Дерево подразделений: сборка поддерева, проверка циклов и
    инвалидация кэша.

    Кэш вторичен: любые его сбои логируются и не роняют запрос,
    источником истины остаётся хранилище.
    """

    def __init__(
        self,
        repo: DepartmentRepository,
        cache: Cache,
        logger: StructuredLogger,
        cache_ttl: int,
    ):
        self.repo = repo
        self.cache = cache
        self.logger = logger.bind(component='department_hierarchy')
        self.cache_ttl = cache_ttl
        self.cache_keys = CacheKeyBuilder('department')
        self.pending: set[UUID] = set()

    def cache_key(self, department_id: UUID) -> str:
        return self.cache_keys.build(HIERARCHY, department_id)

    # ========== CYCLE VALIDATION ==========

    async def validate_no_cycle(self, department_id: UUID, parent_id: UUID | None) -> None:
        """
        Поднимается от предлагаемого родителя к корню. Если по пути встречается
        сам department_id или уже посещённый узел, это цикл.
        """
        if parent_id is None:
            return

        if parent_id == department_id:
            raise CycleError('department cannot be its own parent', field='parent_department_id')

        visited: set[UUID] = set()
        current_id: UUID | None = parent_id

        while current_id is not None:
            if current_id == department_id or current_id in visited:
                raise CycleError('cycle detected in department hierarchy', field='parent_department_id')
            visited.add(current_id)

            current = await self.repo.find_by_id(current_id)
            if current is None:
                raise NotFoundError('department not found in hierarchy', field='parent_department_id')

            current_id = current.parent_department_id

    # ========== HIERARCHY READ (cache-aside) ==========

    async def get_with_hierarchy(self, department_id: UUID) -> DepartmentWithHierarchy:
        key = self.cache_key(department_id)
        log = self.logger.bind(department_id=str(department_id), cache_key=key)

        cached = await self._read_cache(key, log)
        if cached is not None:
            try:
                result = load_hierarchy(cached)
            except PayloadError as e:
                log.warning('Не удалось разобрать дерево из кэша', error=repr(e))
            else:
                log.debug('Дерево подразделения получено из кэша')
                return result

        log.debug('Промах кэша - строим дерево по БД')
        rows = await self.repo.find_hierarchy_subtree(department_id)
        root = build_hierarchy_tree(rows)
        if root is None:
            raise NotFoundError('department not found')

        await self._write_cache(key, dump_hierarchy(root), log)
        return root

    async def _read_cache(self, key: str, log: StructuredLogger) -> str | bytes | None:
        try:
            return await self.cache.get(key)
        except Exception as e:
            log.warning('Ошибка чтения кэша, идём в БД', error=repr(e))
            return None

    async def _write_cache(self, key: str, payload: str, log: StructuredLogger) -> None:
        try:
            await self.cache.set(key, payload, self.cache_ttl)
        except Exception as e:
            log.warning('Не удалось закэшировать дерево подразделения', error=repr(e))
        else:
            log.debug('Дерево подразделения закэшировано', ttl=self.cache_ttl)

    # ========== INVALIDATION ==========

    async def invalidate(self, *department_ids: UUID | None) -> None:
        """
        Удаляет кэш для каждого переданного id (None и повторы пропускаются).

        Id запоминаются: после коммита транзакции flush_pending() удаляет
        их повторно, на случай если параллельное чтение успело закэшировать
        ещё не закоммиченное состояние.
        """
        ids: list[UUID] = []
        for department_id in department_ids:
            if department_id is None or department_id in ids:
                continue
            ids.append(department_id)
            self.pending.add(department_id)
        await self._delete(ids)

    async def flush_pending(self) -> None:
        """Повторная инвалидация после коммита."""
        ids, self.pending = list(self.pending), set()
        await self._delete(ids)

    async def _delete(self, department_ids: list[UUID]) -> None:
        for department_id in department_ids:
            key = self.cache_key(department_id)
            try:
                await self.cache.delete(key)
            except Exception as e:
                self.logger.warning(
                    'Не удалось инвалидировать кэш дерева',
                    department_id=str(department_id),
                    cache_key=key,
                    error=repr(e),
                )
            else:
                self.logger.debug('Кэш дерева инвалидирован', department_id=str(department_id), cache_key=key)

    async def ancestors(self, department_id: UUID | None) -> list[UUID]:
        """Цепочка от department_id (включительно) до корня. Оборванная цепочка просто заканчивается."""
        chain: list[UUID] = []
        current_id = department_id
        while current_id is not None and current_id not in chain:
            chain.append(current_id)
            current = await self.repo.find_by_id(current_id)
            if current is None:
                break
            current_id = current.parent_department_id
        return chain

    async def invalidate_with_ancestors(self, *department_ids: UUID | None) -> None:
        """
        Поддерево предка тоже содержит изменённый узел, поэтому вместе с каждым
        id сбрасывается кэш всей его цепочки предков.
        """
        chain: list[UUID] = []
        for department_id in department_ids:
            chain.extend(await self.ancestors(department_id))
        await self.invalidate(*department_ids, *chain)

