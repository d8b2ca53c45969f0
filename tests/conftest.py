import os

from hypothesis import settings


# CI can run more examples
settings.register_profile(
    "ci",
    deadline=None,
    max_examples=settings.default.max_examples * 5)
settings.register_profile("dev", max_examples=20)

if "CI" in os.environ:
    settings.load_profile("ci")
else:
    settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))
