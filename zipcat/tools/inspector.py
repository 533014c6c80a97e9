"""
zipcat Archive Inspector
Long listing of a ZIP archive's central directory without decompressing.
"""
from typing import Dict, List

from ..extractor.coordinator import ZipArchive
from ..reader.records import CompressionMethod


class Inspector:
    def inspect(self, archive: ZipArchive) -> List[Dict]:
        """
        Describe every entry of an open archive and print the table.
        """
        rows = []
        for entry in archive.entries:
            rows.append({
                'name': entry.name,
                'size': entry.uncompressed_size,
                'compressed_size': entry.compressed_size,
                'method': CompressionMethod.label(entry.data_method),
                'crc32': entry.crc32,
                'modified': entry.modified,
                'is_dir': entry.is_dir,
                'encrypted': entry.is_encrypted,
            })

        self._print(archive, rows)
        return rows

    def _print(self, archive: ZipArchive, rows: List[Dict]):
        def fmt_date(dt):
            if dt is None:
                return '-'.ljust(16)
            return dt.strftime('%Y-%m-%d %H:%M')

        print(f"{'Size':>10}  {'Packed':>10}  {'Method':<8}  {'CRC-32':<8}  {'Modified':<16}  Name")
        print(f"{'-'*10}  {'-'*10}  {'-'*8}  {'-'*8}  {'-'*16}  {'-'*4}")
        for row in rows:
            name = row['name'] + (' *' if row['encrypted'] else '')
            print(
                f"{row['size']:>10}  {row['compressed_size']:>10}  {row['method']:<8}  "
                f"{row['crc32']:08x}  {fmt_date(row['modified'])}  {name}"
            )

        total = sum(row['size'] for row in rows)
        packed = sum(row['compressed_size'] for row in rows)
        files = sum(1 for row in rows if not row['is_dir'])
        print(f"{'-'*10}  {'-'*10}")
        print(f"{total:>10}  {packed:>10}  {files} file(s), {len(rows) - files} dir(s)")
        if archive.comment:
            print(f"Comment: {archive.comment.decode('utf-8', errors='replace')}")


__all__ = ["Inspector"]
