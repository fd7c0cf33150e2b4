import inflect

_engine = inflect.engine()

# singular words with these endings take "es": ingress, componentstatus
SIBILANT_ENDINGS = ("ss", "us", "sh", "ch", "x", "z")


def is_plural(word: str) -> bool:
    # storageclasses, componentstatuses
    if word.endswith("es") and word[:-2].endswith(SIBILANT_ENDINGS):
        return True

    if word.endswith(SIBILANT_ENDINGS):
        return False

    # pods -> pod -> pods, but not ingress -> ingres -> ingreses
    singular = _engine.singular_noun(word)
    return bool(singular) and singular != word and _engine.plural_noun(singular) == word


def pluralize(kind: str) -> str:
    """
    Returns the lowercase plural form of a kind, as used in resource paths:

        Pod -> pods
        NetworkPolicy -> networkpolicies
        StorageClass -> storageclasses
        pods -> pods
    """

    word = kind.strip().lower()
    if not word or is_plural(word):
        return word

    if word.endswith(SIBILANT_ENDINGS):
        return word + "es"

    return _engine.plural_noun(word)
