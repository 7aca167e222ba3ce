"""Registry of all known object types"""

__all__ = ["TypeRegistry", "load_types", "parse_hash"]

import json
import logging
from pathlib import Path

import prpscene


logger = logging.getLogger(__name__)


class TypeRegistry:
    """Catalog of object types, looked up by name, short name or hash.

    A registry is built in two phases. Types are registered first (from
    declarations or hand-built), then `link_types` resolves the names types
    use to refer to each other. Linking seals the registry: after that it
    is read-only and may be shared by any number of loads. `reset` drops
    everything and reopens it.

    Attributes:
        sealed: (bool) Registry has been linked and can no longer change
    """

    def __init__(self):
        self._types = []
        self._by_name = {}
        self._by_short_name = {}
        self._by_hash = {}
        self._sealed = False

    @classmethod
    def from_declarations(cls, decls, name_to_hash=None):
        """Create a linked registry with builtins and declared types.

        Args:
            decls: (Iterable[dict]) Type declarations
            name_to_hash: (dict[str, str | int] | None) Type name to hash
        Returns:
            (TypeRegistry) Sealed registry
        """
        registry = cls()
        registry.register_builtins()
        registry.register_types(decls, name_to_hash or {})
        registry.link_types()
        return registry

    def __repr__(self):
        state = "sealed" if self._sealed else "open"
        return f"TypeRegistry<{len(self._types)} types {state}>"

    def __len__(self):
        return len(self._types)

    def __contains__(self, name):
        return name in self._by_name

    @property
    def sealed(self):
        return self._sealed

    def types(self):
        """Iterate over all types in registration order."""
        return iter(self._types)

    def reset(self):
        """Remove all types and reopen the registry for registration."""
        self._types.clear()
        self._by_name.clear()
        self._by_short_name.clear()
        self._by_hash.clear()
        self._sealed = False

    def register_builtins(self):
        """Register the primitive types every declaration set builds on."""
        for type_ in prpscene.builtin_types():
            if self.register_type(type_) is None:
                raise prpscene.RegistryError(
                    f"Builtin type '{type_.name}' already registered")

    def register_type(self, type_):
        """Add a single constructed type.

        Args:
            type_: (Type) Type to take ownership of
        Returns:
            (Type | None) The registered type, or None when a type with
            the same name already exists
        """
        self._check_open("register_type")
        if type_ is None:
            return None
        if type_.name in self._by_name:
            return None
        self._by_name[type_.name] = type_
        existing = self._by_short_name.setdefault(type_.short_name, type_)
        if existing is not type_:
            logger.warning(
                "Short name '%s' of '%s' already used by '%s'",
                type_.short_name, type_.name, existing.name)
        self._types.append(type_)
        for hash_ in list(type_.hashes):
            self._bind_hash(hash_, type_)
        return type_

    def register_types(self, decls, name_to_hash):
        """Build and register types from declarations.

        Args:
            decls: (Iterable[dict]) Type declarations
            name_to_hash: (dict[str, str | int]) Type name to hash
        Returns:
            (list[Type]) Registered types
        Raises:
            RegistryError: A declaration is invalid or names a type that
                is already registered
        """
        self._check_open("register_types")
        registered = []
        duplicates = []
        for decl in decls:
            type_ = prpscene.Type.from_declaration(decl)
            for hash_ in decl.get("hashes", ()):
                type_.hashes.append(_hash_value(hash_, type_.name))
            if self.register_type(type_) is None:
                duplicates.append(type_.name)
                continue
            registered.append(type_)
        if duplicates:
            raise prpscene.RegistryError(
                f"Duplicate type declarations: {', '.join(duplicates)}")

        for name, hash_ in name_to_hash.items():
            if name not in self._by_name:
                logger.warning("Skipping hash %s for unknown type '%s'", hash_, name)
                continue
            self.add_hash_association(_hash_value(hash_, name), name)

        logger.info(
            "Registered %d types (%d total)", len(registered), len(self._types))
        return registered

    def add_hash_association(self, hash_, name):
        """Bind an additional hash to an existing type.

        Args:
            hash_: (int | str) Hash value
            name: (str) Name of a registered type
        """
        self._check_open("add_hash_association")
        type_ = self._by_name.get(name)
        if type_ is None:
            raise prpscene.RegistryError(f"Cannot associate hash with unknown type '{name}'")
        self._bind_hash(_hash_value(hash_, name), type_)

    def _bind_hash(self, hash_, type_):
        previous = self._by_hash.get(hash_)
        if previous is not None and previous is not type_:
            logger.warning(
                "Hash 0x%08X moved from '%s' to '%s'", hash_, previous.name, type_.name)
            previous.hashes.remove(hash_)
        if hash_ not in type_.hashes:
            type_.hashes.append(hash_)
        self._by_hash[hash_] = type_

    def link_types(self):
        """Resolve references between registered types and seal.

        Raises:
            RegistryError: Already linked, a referenced type is missing, or
                parent chains are invalid
        """
        self._check_open("link_types")

        def resolve(name, what):
            found = self._by_name.get(name)
            if found is None:
                raise prpscene.RegistryError(f"Unknown type '{name}' for {what}")
            return found

        for type_ in self._types:
            type_.link(resolve)
        for type_ in self._types:
            _check_chains(type_)
        self._sealed = True
        logger.info("Linked %d types", len(self._types))

    def find_type_by_name(self, name):
        """(Type | None) Type with the exact name."""
        return self._by_name.get(name)

    def find_type_by_short_name(self, name):
        """(Type | None) Type with the short name."""
        return self._by_short_name.get(name)

    def find_type_by_hash(self, hash_):
        """(Type | None) Type for an int hash or hex string hash."""
        if isinstance(hash_, str):
            hash_ = parse_hash(hash_)
            if hash_ is None:
                return None
        return self._by_hash.get(hash_)

    def _check_open(self, operation):
        if self._sealed:
            raise prpscene.RegistryError(f"Cannot {operation} on a sealed registry")


def parse_hash(text):
    """Hash from a hex string like '0x1000C' or '1000C'.

    Returns:
        (int | None) Parsed hash, None when text is not hexadecimal
    """
    try:
        return int(text.strip(), 16)
    except ValueError:
        return None


def _hash_value(hash_, name):
    if isinstance(hash_, int) and not isinstance(hash_, bool):
        return hash_
    if isinstance(hash_, str):
        value = parse_hash(hash_)
        if value is not None:
            return value
    raise prpscene.RegistryError(f"Invalid hash {hash_!r} for type '{name}'")


def _check_chains(type_):
    """Reject parent cycles, non-complex parents and alias cycles."""
    kinds = prpscene.TypeKind
    seen = {type_.name}
    if type_.kind is kinds.COMPLEX:
        parent = type_.payload.parent
        while parent is not None:
            if parent.kind is not kinds.COMPLEX:
                raise prpscene.RegistryError(
                    f"Parent '{parent.name}' of '{type_.name}' is not COMPLEX")
            if parent.name in seen:
                raise prpscene.RegistryError(f"Parent cycle through '{type_.name}'")
            seen.add(parent.name)
            parent = parent.payload.parent
    elif type_.kind is kinds.ALIAS:
        target = type_.payload.target
        while target.kind is kinds.ALIAS:
            if target.name in seen:
                raise prpscene.RegistryError(f"Alias cycle through '{type_.name}'")
            seen.add(target.name)
            target = target.payload.target


def load_types(path):
    """Load a linked registry from a JSON declarations file.

    The document holds a "types" list of declarations and an optional
    "hashes" object mapping type names to hashes.

    Args:
        path: (str | Path) JSON file
    Returns:
        (TypeRegistry) Sealed registry
    """
    path = Path(path)
    logger.info("Loading type declarations from %s", path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise prpscene.RegistryError(f"Invalid type declarations in {path}: {e}") from e
    if not isinstance(document, dict) or "types" not in document:
        raise prpscene.RegistryError(f"{path} has no 'types' list")
    return TypeRegistry.from_declarations(document["types"], document.get("hashes", {}))
