from street_racer.env import main

main()
