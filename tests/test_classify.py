import unittest, sys, os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))
from cdnfetch.classify import classify, get_extension, get_file_type, get_mime_type


class ClassifyTests(unittest.TestCase):
    def test_extension_is_case_insensitive(self):
        self.assertEqual(classify("movie.MP4"), ("video", "video/mp4"))

    def test_only_last_extension_counts(self):
        self.assertEqual(get_extension("archive.tar.gz"), "gz")
        self.assertEqual(get_file_type("archive.tar.gz"), "archive")

    def test_no_extension(self):
        self.assertEqual(classify("noext"), ("other", "application/octet-stream"))

    def test_trailing_dot(self):
        self.assertEqual(classify("weird."), ("other", "application/octet-stream"))

    def test_known_categories(self):
        cases = {
            "photo.jpeg": ("image", "image/jpeg"),
            "song.mp3": ("audio", "audio/mpeg"),
            "clip.webm": ("video", "video/webm"),
            "report.pdf": ("document", "application/pdf"),
            "main.py": ("code", "application/octet-stream"),
            "bundle.zip": ("archive", "application/zip"),
        }
        for name, expected in cases.items():
            with self.subTest(name=name):
                self.assertEqual(classify(name), expected)

    def test_unknown_extension_degrades(self):
        self.assertEqual(get_file_type("data.xyz"), "other")
        self.assertEqual(get_mime_type("data.xyz"), "application/octet-stream")

    def test_empty_name(self):
        self.assertEqual(classify(""), ("other", "application/octet-stream"))


if __name__ == "__main__":
    unittest.main()
