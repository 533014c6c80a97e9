# tests/integration/test_cli_integration.py

import contextlib
import io
import logging
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from zip_builder import Entry, write_zip
from zipcat.utils.logger import logger, set_verbose
from zipcat_cli.commands import listing
from zipcat_cli.main import main

CONTENT = b'line one\r\nline two\n\x00\xff binary tail'


def run_cli(argv):
    """Run the CLI in-process; return (exit code, raw stdout bytes)."""
    stdout = io.TextIOWrapper(io.BytesIO(), encoding='utf-8')
    code = 0
    with contextlib.redirect_stdout(stdout):
        try:
            main(argv)
        except SystemExit as e:
            code = e.code
    stdout.flush()
    return code, stdout.buffer.getvalue()


class TestCliIntegration(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.archive = write_zip(self.tmp / 'sample.zip', [
            Entry('b.txt', CONTENT, method=8),
            Entry('a/'),
            Entry('a/c.txt', b'see\n' * 600, method=93),
            Entry('secret.txt', b'classified\n', aes_password=b'pw'),
        ])

    def tearDown(self):
        self._tmp.cleanup()

    def test_list_prints_names_in_order(self):
        code, out = run_cli(['list', self.archive])
        self.assertEqual(code, 0)
        self.assertEqual(out, b'b.txt\na/\na/c.txt\nsecret.txt\n')

    def test_ls_alias(self):
        self.assertEqual(run_cli(['ls', self.archive]), run_cli(['list', self.archive]))

    def test_list_long(self):
        code, out = run_cli(['list', '--long', self.archive])
        self.assertEqual(code, 0)
        text = out.decode('utf-8')
        self.assertIn('deflated', text)
        self.assertIn('zstd', text)
        self.assertIn('secret.txt *', text)
        self.assertIn('3 file(s), 1 dir(s)', text)

    def test_cat_reproduces_exact_bytes(self):
        code, out = run_cli(['cat', self.archive, 'b.txt'])
        self.assertEqual(code, 0)
        self.assertEqual(out, CONTENT)

    def test_cat_larger_than_one_chunk(self):
        code, out = run_cli(['cat', self.archive, 'a/c.txt'])
        self.assertEqual(code, 0)
        self.assertEqual(out, b'see\n' * 600)

    def test_cat_missing_entry(self):
        with self.assertLogs('zipcat', level='ERROR') as logs:
            code, out = run_cli(['cat', self.archive, 'missing.txt'])
        self.assertEqual(code, 1)
        self.assertEqual(out, b'')
        self.assertIn(f'missing.txt not found in {self.archive}.', logs.output[0])

    def test_cat_directory_entry(self):
        with self.assertLogs('zipcat', level='ERROR') as logs:
            code, _ = run_cli(['cat', self.archive, 'a/'])
        self.assertEqual(code, 1)
        self.assertIn('a/ is a directory.', logs.output[0])

    def test_cat_encrypted_entry(self):
        code, out = run_cli(['cat', self.archive, 'secret.txt', '--password', 'pw'])
        self.assertEqual(code, 0)
        self.assertEqual(out, b'classified\n')

        with self.assertLogs('zipcat', level='ERROR') as logs:
            code, _ = run_cli(['cat', self.archive, 'secret.txt'])
        self.assertEqual(code, 1)
        self.assertIn('password is required', logs.output[0])

    def test_extract_is_a_stub(self):
        before = sorted(p.name for p in self.tmp.iterdir())
        code, out = run_cli(['extract', self.archive, 'a/c.txt'])
        self.assertEqual(code, 0)
        self.assertEqual(out, f'extract: zip={self.archive}, entry=a/c.txt\n'.encode('utf-8'))
        self.assertEqual(sorted(p.name for p in self.tmp.iterdir()), before)

    def test_x_alias(self):
        code, out = run_cli(['x', self.archive, 'b.txt'])
        self.assertEqual(code, 0)
        self.assertTrue(out.startswith(b'extract: zip='))

    def test_missing_archive(self):
        missing = str(self.tmp / 'nope.zip')
        with self.assertLogs('zipcat', level='ERROR') as logs:
            code, _ = run_cli(['list', missing])
        self.assertEqual(code, 1)
        self.assertIn(f'Archive not found: {missing}', logs.output[0])

    def test_not_a_zip(self):
        junk = self.tmp / 'junk.zip'
        junk.write_bytes(b'definitely not a zip file')
        with self.assertLogs('zipcat', level='ERROR') as logs:
            code, _ = run_cli(['cat', str(junk), 'b.txt'])
        self.assertEqual(code, 1)
        self.assertIn('not a ZIP archive', logs.output[0])

    def test_test_command(self):
        code, out = run_cli(['test', self.archive, '-p', 'pw'])
        self.assertEqual(code, 0)
        self.assertIn(b'No errors detected', out)

        broken = write_zip(self.tmp / 'broken.zip', [Entry('bad.txt', b'data', crc=7)])
        with self.assertLogs('zipcat', level='ERROR') as logs:
            code, _ = run_cli(['t', broken])
        self.assertEqual(code, 1)
        self.assertTrue(any('bad.txt' in line for line in logs.output))

    def test_config_option(self):
        config_path = self.tmp / 'cfg.json'
        config_path.write_text('{"reading": {"chunk_size": 3}}', encoding='utf-8')
        code, out = run_cli(['-c', str(config_path), 'cat', self.archive, 'b.txt'])
        self.assertEqual(code, 0)
        self.assertEqual(out, CONTENT)

    def test_verbose_switches_to_debug(self):
        try:
            code, _ = run_cli(['-v', 'list', self.archive])
            self.assertEqual(code, 0)
            self.assertTrue(logger.handlers)
            self.assertTrue(all(h.level == logging.DEBUG for h in logger.handlers))
        finally:
            set_verbose(False)
        run_cli(['list', self.archive])
        self.assertTrue(all(h.level == logging.INFO for h in logger.handlers))

    def test_interrupt_exits_130(self):
        with patch.object(listing, 'run', side_effect=KeyboardInterrupt), \
                contextlib.redirect_stderr(io.StringIO()) as err:
            code, _ = run_cli(['list', self.archive])
        self.assertEqual(code, 130)
        self.assertIn('cancelled', err.getvalue())

    def test_cat_into_closed_pipe(self):
        class ClosedPipe(io.BytesIO):
            def __init__(self, fd):
                super().__init__()
                self.fd = fd

            def write(self, data):
                raise BrokenPipeError(32, 'Broken pipe')

            def fileno(self):
                return self.fd

        with tempfile.TemporaryFile() as sink:
            stdout = io.TextIOWrapper(ClosedPipe(sink.fileno()), encoding='utf-8')
            with contextlib.redirect_stdout(stdout):
                with self.assertRaises(SystemExit) as cm:
                    main(['cat', self.archive, 'b.txt'])
        self.assertEqual(cm.exception.code, 1)

    def test_unknown_name_encoding_in_config(self):
        config_path = self.tmp / 'cfg.json'
        config_path.write_text('{"reading": {"name_encoding": "no-such-codec"}}', encoding='utf-8')
        with self.assertLogs('zipcat', level='WARNING') as logs:
            code, out = run_cli(['-c', str(config_path), 'list', self.archive])
        self.assertEqual(code, 0)
        self.assertEqual(out, b'b.txt\na/\na/c.txt\nsecret.txt\n')
        self.assertIn('no-such-codec', logs.output[0])


if __name__ == '__main__':
    unittest.main()
