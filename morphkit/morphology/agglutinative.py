"""
Agglutinative join rules (Finnish, Basque).

Finnish enclitic particles are written attached to their host
(talo + kin -> talokin). Basque case and number morphology is already part
of the token, so separately written tokens keep their spacing.
"""

from morphkit.morphology.base import always_spaced, bound_suffix, register_language

FI_CLITICS = ("kin", "kaan", "kään", "han", "hän", "ko", "kö", "pa", "pä")

register_language("fi-FI", (
    bound_suffix(FI_CLITICS, "Finnish clitic particle: {prev} + -{next}"),
))

register_language("eu-ES", (
    always_spaced("Basque default spacing: {prev} {next}"),
))
