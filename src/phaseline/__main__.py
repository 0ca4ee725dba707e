from phaseline.main import main

main()
