"""rsmap public API surface."""

from rsmap.annotations import (
    AnnotationEntry,
    AnnotationStore,
    export_for_annotation,
    import_annotations,
    reconcile_annotations,
)
from rsmap.cache import (
    CacheSnapshot,
    build_snapshot,
    file_unchanged,
    item_changed,
    load_snapshot,
    module_changed,
    save_snapshot,
)
from rsmap.config import RsmapConfig, load_config, serialize_config
from rsmap.errors import (
    ConfigError,
    IndexIOError,
    MetadataError,
    ParseError,
    RsmapError,
    SerializationError,
)
from rsmap.hashing import digest, digest_lines
from rsmap.metadata import CrateMetadata, resolve_crates
from rsmap.model import (
    CrateInfo,
    CrateKind,
    ImplInfo,
    Item,
    ItemKind,
    Module,
    Visibility,
    item_path,
)
from rsmap.parse import SourceParser, extract_import_paths, parse_items
from rsmap.pipeline import GenerateResult, generate
from rsmap.relationships import Relationships, extract_relationships, normalize_type_name
from rsmap.resolve import Resolution, ResolutionWarning, resolve_crate, resolve_module_tree

__all__ = [
    "AnnotationEntry",
    "AnnotationStore",
    "CacheSnapshot",
    "ConfigError",
    "CrateInfo",
    "CrateKind",
    "CrateMetadata",
    "GenerateResult",
    "ImplInfo",
    "IndexIOError",
    "Item",
    "ItemKind",
    "MetadataError",
    "Module",
    "ParseError",
    "Relationships",
    "Resolution",
    "ResolutionWarning",
    "RsmapConfig",
    "RsmapError",
    "SerializationError",
    "SourceParser",
    "Visibility",
    "build_snapshot",
    "digest",
    "digest_lines",
    "export_for_annotation",
    "extract_import_paths",
    "extract_relationships",
    "file_unchanged",
    "generate",
    "import_annotations",
    "item_changed",
    "item_path",
    "load_config",
    "load_snapshot",
    "module_changed",
    "normalize_type_name",
    "parse_items",
    "reconcile_annotations",
    "resolve_crate",
    "resolve_crates",
    "resolve_module_tree",
    "save_snapshot",
    "serialize_config",
]
