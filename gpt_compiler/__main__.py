from gpt_compiler.main import main

main()
