import json
import threading
import unittest

from predicate_ir.canonical import predicate_hash
from predicate_ir.codec import decode_predicate, encode_predicate
from predicate_ir.translator import translate_predicate

from ir_samples import ownership, range_check


class TestParserConcurrency(unittest.TestCase):
    """
    The authoring parser is a shared arpeggio instance; translations running
    on many threads must not interfere with each other.
    """

    def test_concurrent_translation(self):
        texts = [json.dumps(ownership(), indent=2), json.dumps(range_check())]
        expected = [predicate_hash(translate_predicate(t)) for t in texts]

        exceptions = []
        results = []
        lock = threading.Lock()

        def runner(i):
            try:
                text = texts[i % 2]
                predicate = translate_predicate(text)
                blob = encode_predicate(predicate)
                again = decode_predicate(blob)
                with lock:
                    results.append((i % 2, predicate_hash(again)))
            except Exception as e:
                with lock:
                    exceptions.append(e)

        threads = [threading.Thread(target=runner, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(exceptions), 0, f"Exceptions occurred: {exceptions}")
        self.assertEqual(len(results), 20)
        for which, digest in results:
            self.assertEqual(digest, expected[which])

    def test_errors_keep_their_own_positions(self):
        good = json.dumps(ownership(), indent=2)
        bad = '{\n\n  "type": "CompiledPredicate",\n  "name": 5\n}'
        lines = []
        lock = threading.Lock()

        def runner(i):
            try:
                translate_predicate(bad if i % 2 else good)
            except Exception as e:
                with lock:
                    lines.append(getattr(e, "line", None))

        threads = [threading.Thread(target=runner, args=(i,)) for i in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(lines, [4] * 8)


if __name__ == "__main__":
    unittest.main()
