"""Built-in emoji movie questions.

Acceptable answers include common mishearings produced by speech
recognizers, so the matcher has a head start on noisy transcripts.
"""

from emoquiz.quiz.types import Question

MOVIE_QUESTIONS: tuple[Question, ...] = (
    Question(
        clue="🦁👑🌍",
        canonical_answer="The Lion King",
        acceptable_answers=["lion king", "the lion king", "lying king", "line king"],
    ),
    Question(
        clue="🚢❄️💑💔",
        canonical_answer="Titanic",
        acceptable_answers=["titanic", "titenic", "titannick", "the titanic"],
    ),
    Question(
        clue="🕷️🦸‍♂️🏙️",
        canonical_answer="Spider-Man",
        acceptable_answers=[
            "spider man", "spiderman", "spider-man", "spyder man", "spider men",
        ],
    ),
    Question(
        clue="🧙‍♂️💍🌋🗡️",
        canonical_answer="The Lord of the Rings",
        acceptable_answers=[
            "lord of the rings", "the lord of the rings", "lotr",
            "lord of rings", "lord of the ring",
        ],
    ),
    Question(
        clue="👻🔫👨‍🔬🏠",
        canonical_answer="Ghostbusters",
        acceptable_answers=[
            "ghostbusters", "ghost busters", "ghostbuster", "ghost buster",
            "goes busters",
        ],
    ),
    Question(
        clue="🦈🏊‍♂️🩸🏖️",
        canonical_answer="Jaws",
        acceptable_answers=["jaws", "joz", "jawz", "joss"],
    ),
    Question(
        clue="🧊👸❄️⛄",
        canonical_answer="Frozen",
        acceptable_answers=["frozen", "froze in", "frozen movie"],
    ),
    Question(
        clue="🏴‍☠️💀⚓🗺️",
        canonical_answer="Pirates of the Caribbean",
        acceptable_answers=[
            "pirates of the caribbean", "pirates of caribbean", "pirates",
            "pirates caribbean", "pirate of the caribbean", "pirate caribbean",
        ],
    ),
    Question(
        clue="🤖❤️🌱🚀",
        canonical_answer="WALL-E",
        acceptable_answers=[
            "wall-e", "walle", "wall e", "wally", "walley", "wali", "wally e",
        ],
    ),
    Question(
        clue="🦇🃏🌃🦸",
        canonical_answer="The Dark Knight",
        acceptable_answers=[
            "the dark knight", "dark knight", "batman", "dark night", "the dark night",
        ],
    ),
)
