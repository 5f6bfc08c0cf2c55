"""
SSML markup for voice channels.
"""

import logging
from xml.etree import ElementTree

logger = logging.getLogger(__name__)

SSML_NAMESPACE = "http://www.w3.org/2001/10/synthesis"


class SsmlGenerator:
    """Wraps reply text in a <speak><voice> envelope for the configured voice font."""

    def __init__(self, voice_name: str, default_language: str = "en-US"):
        self.voice_name = voice_name
        self.default_language = default_language

    def generate(self, text: str, language_tag: str | None = None) -> str:
        """
        Return SSML for ``text``. Falls back to the plain text if the markup
        cannot be built, so a reply is never dropped over speech formatting.
        """
        try:
            speak = ElementTree.Element(
                "speak",
                {
                    "version": "1.0",
                    "xmlns": SSML_NAMESPACE,
                    "xml:lang": language_tag or self.default_language,
                },
            )
            voice = ElementTree.SubElement(speak, "voice", {"name": self.voice_name})
            voice.text = text
            return ElementTree.tostring(speak, encoding="unicode")
        except (TypeError, ValueError) as e:
            logger.warning(f"SSML generation failed, sending plain text: {e}")
            return text
