"""
Static restaurant content: today's specialties, the weekly promotion and
the FAQ pairs behind the knowledge base.
In production the FAQ would live in a hosted question-answering service.
"""

WELCOME_MESSAGE = "Hi! I'm a restaurant assistant bot. I can help you with your reservation."

FALLBACK_MESSAGE = "Sorry, I didn't understand that."

DISCOUNT_MESSAGE = "This week we have a 25% discount in all of our wine selection"

SPECIALTIES_TITLE = "For today we have:"

# (title, image file under SITE_URL)
TODAYS_SPECIALTIES = [
    ("Carbonara", "carbonara.jpg"),
    ("Pizza", "pizza.jpg"),
    ("Lasagna", "lasagna.jpg"),
]

FAQ = [
    {
        "questions": [
            "What are your opening hours?",
            "When are you open?",
            "What time do you close?",
        ],
        "answer": "We are open every day from 12:00 PM to 11:00 PM.",
    },
    {
        "questions": [
            "Where are you located?",
            "What is your address?",
            "How do I get to the restaurant?",
        ],
        "answer": "You can find us at 1 Contoso Way, right next to the central station.",
    },
    {
        "questions": [
            "Do you have vegetarian options?",
            "Is there vegan food?",
            "Do you serve vegetarian dishes?",
        ],
        "answer": "Yes! Every section of our menu has vegetarian dishes, and most can be made vegan.",
    },
    {
        "questions": [
            "Do you have parking?",
            "Where can I park?",
        ],
        "answer": "Guests can park for free in the garage behind the restaurant.",
    },
    {
        "questions": [
            "Can I bring my dog?",
            "Are pets allowed?",
        ],
        "answer": "Dogs are welcome on our terrace.",
    },
    {
        "questions": [
            "Do you do delivery?",
            "Can I order takeaway?",
            "Do you offer take out?",
        ],
        "answer": "We offer takeaway for every dish on the menu. Delivery is not available yet.",
    },
]


def get_faq_pairs() -> list[tuple[str, str]]:
    """Flatten the FAQ into (question, answer) pairs."""
    return [(question, entry["answer"]) for entry in FAQ for question in entry["questions"]]
