from __future__ import annotations

import unittest

from bs4 import BeautifulSoup

from textbrowser.forms import parse_forms


def _forms(markup: str, base: str = "http://h/dir/page.html"):
    return parse_forms(BeautifulSoup(markup, "html.parser"), base)


class ParseFormsTests(unittest.TestCase):
    def test_forms_are_returned_in_document_order(self) -> None:
        forms = _forms('<form action="one"></form><form action="/two" method="post"></form>')

        self.assertEqual([form.action for form in forms], ["http://h/dir/one", "http://h/two"])
        self.assertEqual([form.method for form in forms], ["GET", "POST"])

    def test_radio_buttons_share_one_input(self) -> None:
        (form,) = _forms(
            '<form><input type="radio" name="r" value="a">'
            '<input type="radio" name="r" value="b" checked></form>'
        )

        radios = form.find_inputs("r", "radio")
        self.assertEqual(len(radios), 1)
        self.assertEqual(radios[0].possible_values, ["a", "b"])
        self.assertEqual(radios[0].value, "b")

    def test_select_defaults_to_first_option(self) -> None:
        (form,) = _forms('<form><select name="s"><option value="1">One</option><option value="2">Two</option></select></form>')

        select = form.find_input("s", "option")
        self.assertEqual(select.value, "1")
        self.assertEqual(select.name_for_value("2"), "Two")
        self.assertEqual(select.value_for_name("Two"), "2")
        with self.assertRaises(ValueError):
            select.value_for_name("Three")

    def test_multiple_select_yields_one_input_per_option(self) -> None:
        (form,) = _forms(
            '<form><select name="m" multiple><option>x</option><option selected>y</option></select></form>'
        )

        options = form.find_inputs("m", "option")
        self.assertEqual(len(options), 2)
        self.assertTrue(all(option.multiple for option in options))
        self.assertEqual([option.value for option in options], [None, "y"])

    def test_textarea_drops_leading_newline(self) -> None:
        (form,) = _forms('<form><textarea name="t">\nline one\nline two</textarea></form>')

        self.assertEqual(form.find_input("t", "textarea").value, "line one\nline two")

    def test_reset_and_plain_buttons_are_ignored(self) -> None:
        (form,) = _forms('<form><input type="reset"><button type="button">x</button><button>Send</button></form>')

        self.assertEqual([item.type for item in form.inputs], ["submit"])
        self.assertEqual(form.inputs[0].label, "Send")

    def test_loose_controls_form_a_detached_form(self) -> None:
        forms = _forms('<form><input name="a"></form><input name="b">')

        self.assertEqual(len(forms), 2)
        self.assertFalse(forms[0].detached)
        self.assertTrue(forms[1].detached)
        self.assertEqual([item.name for item in forms[1].inputs], ["b"])


class FormSubmissionTests(unittest.TestCase):
    def test_get_submission_encodes_query(self) -> None:
        (form,) = _forms(
            '<form action="/search"><input name="q" value="x y">'
            '<input type="checkbox" name="c" value="1">'
            '<input type="submit" name="go" value="Go"></form>'
        )

        request = form.click(form.find_input("go", "submit"))
        self.assertEqual(request.method, "GET")
        self.assertEqual(request.uri, "http://h/search?q=x+y&go=Go")

    def test_disabled_inputs_are_not_submitted(self) -> None:
        (form,) = _forms('<form action="/s"><input name="a" value="1" disabled><input name="b" value="2"></form>')

        self.assertEqual(form.form_pairs(), [("b", "2")])

    def test_post_submission_is_urlencoded(self) -> None:
        (form,) = _forms('<form action="/s" method="post"><input name="q" value="x y"></form>')

        request = form.click()
        self.assertTrue(request.is_post)
        self.assertEqual(request.uri, "http://h/s")
        self.assertEqual(request.body, b"q=x+y")
        self.assertEqual(request.headers["Content-Type"], "application/x-www-form-urlencoded")

    def test_multipart_submission(self) -> None:
        (form,) = _forms(
            '<form action="/up" method="post" enctype="multipart/form-data"><input name="q" value="v"></form>'
        )

        request = form.click()
        self.assertTrue(request.headers["Content-Type"].startswith("multipart/form-data"))
        self.assertIn(b'name="q"', request.body)
        self.assertIn(b"v", request.body)

    def test_image_submit_sends_coordinates(self) -> None:
        (form,) = _forms('<form action="/s"><input type="image" name="map" src="m.png"></form>')

        pairs = form.form_pairs(form.find_input("map", "image"))
        self.assertEqual(pairs, [("map.x", "1"), ("map.y", "1")])


if __name__ == "__main__":
    unittest.main()
