from __future__ import annotations

import unittest

from scripture_extractor import (
    clean_passage_text,
    compose_passages,
    extract_passage_body,
    normalize_reference,
    protect_verse_numbers,
    restore_verse_numbers,
    split_references,
)

PASSAGE_PAGE = """
<html><body>
<div class="dropdown-display"><span class="versenum">99</span>not passage</div>
<div class="passage-text">
  <div class="passage-content version-NIV">
    <h3><span class="text">For God So Loved</span></h3>
    <p class="chapter-1">
      <span class="text John-3-16"><span class="chapternum">3&nbsp;</span>For God so loved the world
        <sup class="crossreference" data-cr="#cen-NIV-26140A">(<a href="#cen-NIV-26140A">A</a>)</sup>
        that he gave his one and only Son (B)</span>
      <span class="text John-3-17"><sup class="versenum">17&nbsp;</sup>For God did not send his Son
        <sup class="footnote" data-fn="#fen-NIV-26141a">[<a href="#fen-NIV-26141a">a</a>]</sup>
        into the world to condemn the world</span>
    </p>
    <div class="footnotes">
      <h4>Footnotes</h4>
      <ol><li id="fen-NIV-26141a"><span class="footnote-text">Or <i>his only begotten Son</i></span></li></ol>
    </div>
    <div class="crossrefs hidden">
      <h4>Cross references</h4>
      <ol><li>John 3:16 : Ro 5:8</li></ol>
    </div>
  </div>
</div>
<div class="publisher-info">Copyright</div>
</body></html>
"""


class TestReferences(unittest.TestCase):
    def test_split_keeps_bare_verse_numbers_with_their_reference(self) -> None:
        self.assertEqual(
            split_references("John 3:16,18, Romans 8:28"),
            ["John 3:16,18", "Romans 8:28"],
        )

    def test_split_empty(self) -> None:
        self.assertEqual(split_references(""), [])
        self.assertEqual(split_references(" , "), [])

    def test_normalize_abbreviations(self) -> None:
        self.assertEqual(normalize_reference("I Cor 13:4-7"), "1 Corinthians 13:4-7")
        self.assertEqual(normalize_reference("Ps. 23"), "Psalms 23")
        self.assertEqual(normalize_reference("Genesis 1:1"), "Genesis 1:1")


class TestPassageBody(unittest.TestCase):
    def test_verse_numbers_kept_in_order(self) -> None:
        body = extract_passage_body(PASSAGE_PAGE)
        self.assertTrue(body.startswith("3 For God so loved the world"), body)
        self.assertLess(body.index("3 For God"), body.index("17 For God did not send"))

    def test_noise_is_removed(self) -> None:
        body = extract_passage_body(PASSAGE_PAGE)
        for noise in ("Footnotes", "Cross references", "begotten", "(A)", "(B)", "[a]", "For God So Loved", "Copyright", "99"):
            self.assertNotIn(noise, body)
        self.assertNotIn("  ", body)

    def test_linked_verse_number_is_kept(self) -> None:
        page = '<div class="passage-text"><sup class="versenum"><a href="#v5">5</a></sup>text</div>'
        self.assertEqual(extract_passage_body(page), "5 text")

    def test_every_protected_number_is_restored(self) -> None:
        fragment = '<sup class="versenum"><a href="#">5</a>&nbsp;</sup>a <span class="chapternum">6 </span>b'
        protected, numbers = protect_verse_numbers(fragment)
        self.assertEqual(numbers, ["5", "6"])
        self.assertEqual(restore_verse_numbers(clean_passage_text(protected), numbers), "5 a 6 b")

    def test_page_without_passage_container(self) -> None:
        self.assertEqual(extract_passage_body("<html><p>No results found.</p></html>"), "")

    def test_compose_keeps_failed_references_in_label(self) -> None:
        passage = compose_passages([("John 3:16-17", PASSAGE_PAGE), ("Romans 8:28", "")])
        self.assertEqual(passage.reference_label, "John 3:16-17, Romans 8:28")
        self.assertEqual(passage.body, extract_passage_body(PASSAGE_PAGE))


if __name__ == "__main__":
    unittest.main()
