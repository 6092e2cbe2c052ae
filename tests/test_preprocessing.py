import pytest

from backend.agents.preprocessing_agent import PreprocessingAgent


def test_clean_text_normalizes_whitespace():
    agent = PreprocessingAgent()
    text = "Fire\r\nexits  are\t\tmarked.\x07\n\n\n\n  Keep   them clear. "

    assert agent.clean_text(text) == "Fire\nexits are marked.\n\nKeep them clear."
    assert agent.clean_text(None) == ""


def test_short_text_is_a_single_chunk():
    agent = PreprocessingAgent(chunk_size=100, chunk_overlap=20)

    assert agent.split_into_chunks("Call 911 in an emergency.") == ["Call 911 in an emergency."]
    assert agent.split_into_chunks("") == []


def test_chunks_respect_size_and_overlap():
    agent = PreprocessingAgent(chunk_size=120, chunk_overlap=60)
    sentences = [f"Rule {n} says students must carry their ID card at all times." for n in range(8)]
    text = " ".join(sentences)

    chunks = agent.split_into_chunks(text)

    assert len(chunks) > 1
    assert all(len(chunk) <= 120 for chunk in chunks)
    for previous, current in zip(chunks, chunks[1:]):
        last_sentence = previous.split('. ')[-1]
        assert current.startswith(last_sentence.rstrip('.'))
    assert "Rule 7 says" in chunks[-1]


def test_every_sentence_survives_chunking():
    agent = PreprocessingAgent(chunk_size=150, chunk_overlap=0)
    paragraphs = ["Evacuate calmly. Use the stairs.", "Meet at the assembly point. Wait for staff."] * 5
    text = "\n\n".join(paragraphs)

    joined = " ".join(agent.split_into_chunks(text))

    assert joined.count("Evacuate calmly.") == 5
    assert joined.count("Wait for staff.") == 5


def test_oversized_words_are_hard_split():
    agent = PreprocessingAgent(chunk_size=50, chunk_overlap=10)
    text = "x" * 130

    chunks = agent.split_into_chunks(text)

    assert all(len(chunk) <= 50 for chunk in chunks)
    assert "".join(chunks).count("x") >= 130


def test_invalid_chunk_settings():
    with pytest.raises(ValueError):
        PreprocessingAgent(chunk_size=0)
    with pytest.raises(ValueError):
        PreprocessingAgent(chunk_size=100, chunk_overlap=100)


def test_preprocess_document_reports_chunk_count():
    agent = PreprocessingAgent(chunk_size=40, chunk_overlap=0)

    result = agent.preprocess_document("First paragraph here.\n\nSecond paragraph follows on.", "notes.txt")

    assert result['total_chunks'] == len(result['chunks']) == 2
    assert result['cleaned_text'].startswith("First paragraph")


@pytest.mark.parametrize('text, filename, expected', [
    ("In case of fire, evacuate through the marked exits.", "drill.txt", 'emergency'),
    ("The clinic hotline phone number and counseling service hours.", "contacts.pdf", 'resource'),
    ("Theft and harassment should be reported to security.", "notes.txt", 'safety'),
    ("Lorem ipsum dolor sit amet.", "misc.txt", 'other'),
])
def test_suggest_category(text, filename, expected):
    assert PreprocessingAgent().suggest_category(text, filename) == expected


def test_paragraph_breaks_are_kept_inside_chunks():
    agent = PreprocessingAgent(chunk_size=80, chunk_overlap=0)
    text = "Exits are marked.\n\nUse the stairs.\n\nMeet at the gate.\n\n" + "Stay with your group until staff arrive."

    chunks = agent.split_into_chunks(text)

    assert chunks[0] == "Exits are marked.\n\nUse the stairs.\n\nMeet at the gate."
    assert all(len(chunk) <= 80 for chunk in chunks)


def test_sentences_of_a_long_paragraph_are_joined_by_spaces():
    agent = PreprocessingAgent(chunk_size=60, chunk_overlap=0)
    text = "Alarms sound twice. Leave calmly. Do not run. Wait outside for the all clear from security staff."

    chunks = agent.split_into_chunks(text)

    assert chunks[0] == "Alarms sound twice. Leave calmly. Do not run."
    assert "\n" not in " ".join(chunks)
