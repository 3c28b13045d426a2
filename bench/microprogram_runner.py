"""
Microprogram runner CLI: execute programs on the HybridCore scalar pipeline.

Usage:
  python -m bench.microprogram_runner --list
  python -m bench.microprogram_runner --program int_calc --check
  python -m bench.microprogram_runner --hex-file prog.hex --vcd prog.vcd
  python -m bench.microprogram_runner --program mixed_mode --json out.json
"""

import argparse
import json
import sys
import time
from dataclasses import replace

from pipeline.isa import disassemble

from .microprogram import BUILTIN_PROGRAMS, get_program, load_hex_program
from .processor_sim import ProcessorSimulator, format_registers
from .reference_model import ScalarCoreModel


def run_program(program, vcd_path=None, verbose=False):
    """Simulate one microprogram. Returns (result dict, registers)."""
    sim = ProcessorSimulator(program.words, load_data=program.load_data,
                             vcd_path=vcd_path, verbose=verbose)
    t0 = time.perf_counter()
    registers, trace = sim.run()
    elapsed = time.perf_counter() - t0

    return {
        "program": program.name,
        "description": program.description,
        "instructions": [f"{w:08X}" for w in program.words],
        "load_data": f"{program.load_data:016X}",
        "cycles": sim.cycles,
        "sim_time_s": round(elapsed, 3),
        "registers": [f"{r:016X}" for r in registers],
        "memory_trace": [
            {"read": a.read, "write": a.write,
             "addr": f"{a.addr:016X}", "data": f"{a.data:016X}"}
            for a in trace if a.read or a.write
        ],
    }, registers


def check_against_model(program, registers):
    """Compare simulated registers with the reference model. Returns mismatches."""
    model = ScalarCoreModel()
    model.run(program.words, load_data=program.load_data)
    mismatches = []
    for i, (hw, sw) in enumerate(zip(registers, model.registers)):
        if hw != sw:
            mismatches.append(f"R{i}: hardware {hw:016X} != model {sw:016X}")
    return mismatches


def print_program_list():
    print(f"{'Program':<20} {'Instr':>5}  Description")
    print("-" * 70)
    for name in sorted(BUILTIN_PROGRAMS):
        p = BUILTIN_PROGRAMS[name]
        print(f"{name:<20} {len(p.words):>5}  {p.description}")


def main():
    parser = argparse.ArgumentParser(
        description="Run microprograms on the HybridCore scalar pipeline")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--program", help="Built-in program name")
    src.add_argument("--hex-file", help="Hex program file (one word per line)")
    parser.add_argument("--list", action="store_true",
                        help="List built-in programs and exit")
    parser.add_argument("--load-data", default=None,
                        help="64-bit hex value driven on LOADs")
    parser.add_argument("--check", action="store_true",
                        help="Compare against the reference model")
    parser.add_argument("--vcd", default=None, help="Write a VCD waveform")
    parser.add_argument("--json", default=None, help="Write results as JSON")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    if args.list:
        print_program_list()
        return

    try:
        if args.hex_file:
            program = load_hex_program(args.hex_file)
        else:
            program = get_program(args.program or "int_calc")
        if args.load_data is not None:
            program = replace(program, load_data=int(args.load_data, 16))
    except (OSError, KeyError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Running microprogram: {program.name}")
    print(f"  {program.description}")
    if args.verbose:
        for pc, word in enumerate(program.words):
            print(f"  [{pc:3d}] {word:08X}  {disassemble(word)}")

    result, registers = run_program(program, vcd_path=args.vcd,
                                    verbose=args.verbose)

    print("============ Register Contents After Execution ============")
    for line in format_registers(registers):
        print(line)
    print("==========================================================")

    status = 0
    if args.check:
        mismatches = check_against_model(program, registers)
        result["check"] = "pass" if not mismatches else "fail"
        result["mismatches"] = mismatches
        if mismatches:
            print("CHECK FAILED:")
            for line in mismatches:
                print(f"  {line}")
            status = 1
        else:
            print("CHECK PASSED: registers match the reference model")

    if args.vcd:
        print(f"Waveform saved to {args.vcd}")

    if args.json:
        with open(args.json, "w") as f:
            json.dump(result, f, indent=2)
        print(f"Results saved to {args.json}")

    sys.exit(status)


if __name__ == "__main__":
    main()
