from orgfiles.models.columns import ColumnSpec, IndexSchema, parse_column_definition
from orgfiles.models.enums import FileType
from orgfiles.models.options import ManagerOptions
from orgfiles.models.query import RawPredicate
from orgfiles.models.record import FileRecord
from orgfiles.models.stream import RecordSource, RecordStream

__all__ = [
    "ColumnSpec",
    "FileRecord",
    "FileType",
    "IndexSchema",
    "ManagerOptions",
    "RawPredicate",
    "RecordSource",
    "RecordStream",
    "parse_column_definition",
]
