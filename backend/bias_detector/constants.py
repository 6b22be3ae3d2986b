"""Sample text pair served by the "load example" action."""

EXAMPLE_REFERENCE_TEXT = (
    "The Great Barrier Reef is the world's largest coral reef system, composed of over "
    "2,900 individual reefs and 900 islands stretching for over 2,300 kilometres. The reef "
    "is located in the Coral Sea, off the coast of Queensland, Australia. It can be seen "
    "from outer space and is the world's biggest single structure made by living organisms."
)

EXAMPLE_GENERATED_TEXT = (
    "Off the coast of Queensland, Australia, in the Coral Sea, lies the Great Barrier Reef, "
    "the largest coral reef system in the world. It is made up of more than 2,900 reefs and "
    "900 islands and stretches for over 2,300 kilometres. Because it is the biggest single "
    "structure built by living organisms, it is even visible from space. Rising sea "
    "temperatures, however, have caused repeated mass bleaching events since 1998, which "
    "threaten the long-term survival of many of its coral species."
)
