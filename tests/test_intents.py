import pytest

from server.intents import Chat, EditImage, GenerateImage, classify, image_prompt


def test_plain_text_is_chat():
    assert classify("hello there", has_image_under_edit=False) == Chat()


@pytest.mark.parametrize(
    "text, prompt",
    [
        ("Show me a dragon", "a dragon"),
        ("bring me a robot dog", "a robot dog"),
        ("Can I get a pic of a castle", "Can I get  a castle"),
        ("show me a pic of a unicorn", "a unicorn"),
        ("SHOW ME space pizza", "space pizza"),
    ],
)
def test_generate_strips_trigger_phrases(text, prompt):
    assert classify(text) == GenerateImage(prompt=prompt)


def test_edit_keeps_original_text_when_image_pending():
    text = "Make it purple and ADD wings"
    assert classify(text, has_image_under_edit=True) == EditImage(prompt=text)


def test_edit_wins_over_generate_while_editing():
    text = "show me it with a hat, add a cape"
    assert classify(text, has_image_under_edit=True) == EditImage(prompt=text)


def test_edit_words_without_pending_image_are_not_edits():
    assert classify("add this to my missions") == Chat()
    assert classify("change it and show me a cat") == GenerateImage(prompt="change it and  a cat")


def test_pending_image_without_edit_words_falls_through():
    assert classify("show me a dragon", has_image_under_edit=True) == GenerateImage(prompt="a dragon")
    assert classify("wow cool", has_image_under_edit=True) == Chat()


@pytest.mark.parametrize("text", ["", "   ", "\n"])
def test_blank_text_is_rejected(text):
    with pytest.raises(ValueError):
        classify(text)


def test_image_prompt_is_case_insensitive():
    assert image_prompt("Bring Me A Pic Of the moon") == "the moon"
