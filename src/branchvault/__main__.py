from branchvault import main

main()
