"""
Problem Decoding Pipeline
decoding/

Steps:
1. Board Profiles: syllabus/level text → assessment profile (AO split, command words)
2. Step Generator: oracle decodes the problem into `marks` MCQ steps + solution
3. Fallback Generator: deterministic canned steps when the oracle is unavailable
4. Validator: dedup, exact step count, renumbering, solution flattening
5. Hint Engine: one discriminating, non-duplicated hint per step
6. Synthesis: concurrent, time-boxed working steps / key points / pitfalls
7. Pipeline: orchestrates 1-6 for a single decode request
"""
