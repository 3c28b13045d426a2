"""
Microprogram loading for the HybridCore scalar pipeline.

A microprogram is a flat list of 32-bit instruction words, executed one
per clock.  Hex program files hold one word per line; `//` and `#` start
comments, blank lines are skipped and the `0x` prefix is optional:

    0241000A  // ADD.INT32 R4, R1, #10
    02420014  # ADD.INT32 R4, R2, #20

The built-in programs below are the regression programs the processor has
always been exercised with.
"""

from dataclasses import dataclass, field

# Driven on mem_data_in while a LOAD executes
DEFAULT_LOAD_DATA = 0xABCD12345678ABCD
BASIC_LOAD_DATA = 0xABCD123456789ABC

MAX_WORD = 0xFFFFFFFF


@dataclass
class Microprogram:
    name: str
    description: str
    words: list = field(default_factory=list)  # list of int (32-bit words)
    load_data: int = DEFAULT_LOAD_DATA


def parse_hex_program(text: str) -> list:
    """Parse hex program text into a list of instruction words."""
    words = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        for marker in ("//", "#"):
            if marker in line:
                line = line[:line.index(marker)]
        line = line.strip()
        if not line:
            continue

        token = line
        if token.lower().startswith("0x"):
            token = token[2:]
        try:
            word = int(token, 16)
        except ValueError:
            raise ValueError(
                f"line {lineno}: not a hex instruction word: {line!r}") from None
        if word > MAX_WORD:
            raise ValueError(
                f"line {lineno}: word {line} does not fit in 32 bits")
        words.append(word)
    return words


def load_hex_program(filepath: str, load_data=DEFAULT_LOAD_DATA) -> Microprogram:
    """Read a hex program file into a Microprogram named after the file."""
    with open(filepath) as f:
        words = parse_hex_program(f.read())
    name = filepath.replace("\\", "/").rsplit("/", 1)[-1].split(".", 1)[0]
    return Microprogram(name=name, description=f"Loaded from {filepath}",
                        words=words, load_data=load_data)


def _program(name, description, words, load_data=DEFAULT_LOAD_DATA):
    return Microprogram(name=name, description=description,
                        words=list(words), load_data=load_data)


BUILTIN_PROGRAMS = {p.name: p for p in [
    _program("int_calc",
             "Integer arithmetic across INT8/INT16/INT32 formats",
             [0x0241000A, 0x02420014, 0x0143001E, 0x00440028,
              0x02512000, 0x12634000, 0x02751000, 0x0084000F]),
    _program("float_calc",
             "Floating-point tagged operations in several precisions",
             [0x06410005, 0x06420003, 0x04430002, 0x05440004,
              0x06512000, 0x26612000, 0x24734000, 0x2E860000, 0x6E910000]),
    _program("memory_ops",
             "Load and store with register + immediate addressing",
             [0x02410064, 0x0242002A, 0x0643000A,
              0xE2210000, 0xE6310004, 0xD2410000, 0xD6510004]),
    _program("mixed_mode",
             "Switching between GP and AMC mode",
             [0x06410004, 0x06420009, 0x26312000, 0x06412000,
              0x2E520000, 0x0E631000, 0x6E710000]),
    _program("basic_arithmetic",
             "GP arithmetic on INT32 and INT8",
             [0x00410300, 0x02520400, 0x01630500, 0x07741000],
             load_data=BASIC_LOAD_DATA),
    _program("floating_point",
             "GP ADD/MUL on FP32 tags",
             [0x0648000A, 0x06590002, 0x2669A000],
             load_data=BASIC_LOAD_DATA),
    _program("memory_operations",
             "LOAD/STORE on INT64 and FP32",
             [0x06410005, 0xD3200064, 0xE6300096, 0xD6400032],
             load_data=BASIC_LOAD_DATA),
    _program("amc_mode",
             "AMC SQRT/MADD/SIN stand-ins",
             [0x06510064, 0x2E620000, 0x0E730000, 0x6E840000],
             load_data=BASIC_LOAD_DATA),
    _program("mixed",
             "Mixed integer, float, AMC and MOV",
             [0x00A10005, 0x02C20064, 0x0683000A, 0x2EC40000,
              0x06950020, 0xF0960000],
             load_data=BASIC_LOAD_DATA),
]}


def get_program(name: str) -> Microprogram:
    try:
        return BUILTIN_PROGRAMS[name]
    except KeyError:
        raise KeyError(
            f"unknown program '{name}' "
            f"(available: {', '.join(sorted(BUILTIN_PROGRAMS))})") from None
