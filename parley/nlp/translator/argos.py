from __future__ import annotations
import threading
from .base import Translator
from parley.contracts import TranslationRequest, TranslationResult

class ArgosTranslator(Translator):
    """
    Offline translation through argostranslate. Language packages are
    installed lazily, once per (from, to) pair.
    """
    def __init__(self, auto_install: bool = True):
        self.auto_install = auto_install
        self._ready: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "argos"

    def _ensure_ready(self, from_code: str, to_code: str) -> None:
        pair = (from_code, to_code)
        with self._lock:
            if pair in self._ready:
                return

            import argostranslate.package
            import argostranslate.translate

            installed = argostranslate.translate.get_installed_languages()
            src = next((l for l in installed if l.code == from_code), None)
            dst = next((l for l in installed if l.code == to_code), None)
            have_pair = src is not None and dst is not None and src.get_translation(dst) is not None

            if not have_pair:
                if not self.auto_install:
                    raise RuntimeError(
                        f"Argos model {from_code}->{to_code} not installed and auto_install=False"
                    )

                argostranslate.package.update_package_index()
                available = argostranslate.package.get_available_packages()

                pkg = None
                for p in available:
                    if p.from_code == from_code and p.to_code == to_code:
                        pkg = p
                        break
                if pkg is None:
                    raise RuntimeError(f"No Argos package found for {from_code}->{to_code}")

                path = pkg.download()
                argostranslate.package.install_from_path(path)

            self._ready.add(pair)

    def translate(self, req: TranslationRequest) -> TranslationResult:
        self._ensure_ready(req.source_lang, req.target_lang)
        import argostranslate.translate
        out = argostranslate.translate.translate(req.text, req.source_lang, req.target_lang)
        return self._result(req, out)
