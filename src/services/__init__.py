"""
Services applicatifs (cas d'utilisation).

Les services orchestrent la logique du domaine : resolution des identifiants,
reconciliation des sources, rafraichissements et file de jobs.

Ils dependent des ports definis dans core/, jamais des implementations
concretes des adapters (injectees par le container).
"""
