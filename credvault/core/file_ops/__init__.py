"""
File Operations Module
======================

Export and import of encrypted credential records.

Records travel sealed: nothing here decrypts or re-encrypts a password.
"""

from credvault.core.file_ops.interchange import (
    EXPORT_FORMAT,
    EXPORT_VERSION,
    ImportSummary,
    decode_records,
    encode_records,
    export_store,
    import_records,
    import_store,
    read_export,
)

__all__ = [
    "EXPORT_FORMAT",
    "EXPORT_VERSION",
    "ImportSummary",
    "decode_records",
    "encode_records",
    "export_store",
    "import_records",
    "import_store",
    "read_export",
]
